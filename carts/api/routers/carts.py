#carts/api/routers/carts.py
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from carts.data.database import get_db
from carts.domain.schemas import (
    CartOut,
    CreateCartIn,
    DeleteOut,
    ItemIn,
    ItemUpdateIn,
    VersionIn,
)
from carts.errors import (
    ConstraintViolation,
    InternalError,
    InvalidArgument,
    NotFound,
    VersionConflict,
)
from carts.services.cart_service import CartService
from carts.services.lock_service import LockService
from carts.utils.settings import CART_CREATE_LOCK_ENABLED

router = APIRouter(prefix="/carts", tags=["carts"])


def get_service(db: Session = Depends(get_db)) -> CartService:
    return CartService(
        db=db,
        lock_service=LockService() if CART_CREATE_LOCK_ENABLED else None,
    )


def to_http_error(e: Exception) -> HTTPException:
    if isinstance(e, InvalidArgument):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, NotFound):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, (VersionConflict, ConstraintViolation)):
        return HTTPException(status_code=409, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


@router.post("/", response_model=CartOut)
def get_or_create_cart(payload: CreateCartIn, svc: CartService = Depends(get_service)):
    try:
        return svc.get_or_create_cart(payload.user_id)
    except (InvalidArgument, ConstraintViolation, InternalError) as e:
        raise to_http_error(e)


@router.get("/{cart_id}", response_model=CartOut)
def get_cart(cart_id: UUID, svc: CartService = Depends(get_service)):
    try:
        return svc.get_cart(cart_id)
    except (NotFound, InternalError) as e:
        raise to_http_error(e)


@router.post("/{cart_id}/items", response_model=CartOut)
def add_item(cart_id: UUID, payload: ItemIn, svc: CartService = Depends(get_service)):
    try:
        return svc.add_item(
            cart_id=cart_id,
            product_id=payload.product_id,
            quantity=payload.quantity,
            expected_version=payload.version,
        )
    except (InvalidArgument, NotFound, VersionConflict, ConstraintViolation, InternalError) as e:
        raise to_http_error(e)


@router.patch("/{cart_id}/items/{item_id}", response_model=CartOut)
def update_item(
    cart_id: UUID,
    item_id: UUID,
    payload: ItemUpdateIn,
    svc: CartService = Depends(get_service),
):
    try:
        return svc.update_item(cart_id, item_id, payload.quantity, payload.version)
    except (InvalidArgument, NotFound, VersionConflict, InternalError) as e:
        raise to_http_error(e)


@router.delete("/{cart_id}/items/{item_id}", response_model=CartOut)
def remove_item(
    cart_id: UUID,
    item_id: UUID,
    version: int = Query(..., ge=1),
    svc: CartService = Depends(get_service),
):
    try:
        return svc.remove_item(cart_id, item_id, version)
    except (InvalidArgument, NotFound, VersionConflict, InternalError) as e:
        raise to_http_error(e)


@router.post("/{cart_id}/clear", response_model=CartOut)
def clear_cart(cart_id: UUID, payload: VersionIn, svc: CartService = Depends(get_service)):
    try:
        return svc.clear_cart(cart_id, payload.version)
    except (InvalidArgument, NotFound, VersionConflict, InternalError) as e:
        raise to_http_error(e)


@router.delete("/{cart_id}", response_model=DeleteOut)
def soft_delete_cart(
    cart_id: UUID,
    version: int = Query(..., ge=1),
    svc: CartService = Depends(get_service),
):
    try:
        return svc.soft_delete_cart(cart_id, version)
    except (InvalidArgument, NotFound, VersionConflict, InternalError) as e:
        raise to_http_error(e)
