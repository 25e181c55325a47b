# carts/api/routers/admin.py
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session, sessionmaker

from carts.api.routers.carts import to_http_error
from carts.data.database import get_db, get_session_factory
from carts.domain.schemas import CartListOut, CartOut, DeleteOut
from carts.errors import InternalError, InvalidArgument, NotFound
from carts.services.admin_service import AdminCartService

router = APIRouter(prefix="/admin/carts", tags=["admin"])


def get_service(db: Session = Depends(get_db)) -> AdminCartService:
    return AdminCartService(db)


@router.get("/", response_model=CartListOut)
def list_carts(
    user_id: UUID | None = Query(None),
    include_deleted: bool = Query(False),
    limit: int = Query(50, ge=0),
    offset: int = Query(0, ge=0),
    svc: AdminCartService = Depends(get_service),
):
    try:
        return svc.list_carts(user_id, include_deleted, limit, offset)
    except (InvalidArgument, InternalError) as e:
        raise to_http_error(e)


@router.get("/export")
def export_carts(
    user_id: UUID | None = Query(None),
    include_deleted: bool = Query(False),
    limit: int = Query(0, ge=0),
    offset: int = Query(0, ge=0),
    session_factory: sessionmaker = Depends(get_session_factory),
):
    """
    Streams matching carts as NDJSON, one cart per line.

    The stream owns its session so it stays open until the last line is sent.
    """
    db = session_factory()
    try:
        carts = AdminCartService(db).export_carts(user_id, include_deleted, limit, offset)
    except InvalidArgument as e:
        db.close()
        raise to_http_error(e)

    def lines():
        try:
            for cart in carts:
                yield cart.model_dump_json() + "\n"
        finally:
            db.close()

    return StreamingResponse(lines(), media_type="application/x-ndjson")


@router.post("/{cart_id}/restore", response_model=CartOut)
def restore_cart(cart_id: UUID, svc: AdminCartService = Depends(get_service)):
    try:
        return svc.restore_cart(cart_id)
    except (NotFound, InternalError) as e:
        raise to_http_error(e)


@router.delete("/{cart_id}", response_model=DeleteOut)
def force_delete_cart(cart_id: UUID, svc: AdminCartService = Depends(get_service)):
    try:
        return svc.force_delete_cart(cart_id)
    except (NotFound, InternalError) as e:
        raise to_http_error(e)
