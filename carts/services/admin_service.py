# carts/services/admin_service.py
from typing import Iterator
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from carts.data.models.cart import utcnow
from carts.domain.mappers import to_cart_out
from carts.domain.schemas import CartListOut, CartOut, DeleteOut
from carts.errors import CART_NOT_FOUND, InternalError, NotFound
from carts.repos.cart_repo import CartRepo
from carts.services.transaction import atomic
from carts.utils.logging import get_logger
from carts.utils.settings import EXPORT_BATCH_SIZE
from carts.utils.validators import parse_optional_uuid, parse_uuid, require_non_negative

logger = get_logger(__name__)


class AdminCartService:
    """
    Privileged operations that bypass the normal visibility rules.

    Listing and export filter on soft deletion only (never on expiry),
    force delete ignores version and state, restore takes no expected
    version.
    """

    def __init__(self, db: Session, export_batch_size: int = EXPORT_BATCH_SIZE):
        self.repo = CartRepo(db)
        self.export_batch_size = export_batch_size

    def list_carts(
        self,
        user_id=None,
        include_deleted: bool = False,
        limit: int = 0,
        offset: int = 0,
    ) -> CartListOut:
        uid = parse_optional_uuid(user_id, "user_id")
        require_non_negative(limit, "limit")
        require_non_negative(offset, "offset")
        logger.info(
            f"ListCarts (limit: {limit}, offset: {offset}, user_id: {uid}, include_deleted: {include_deleted})"
        )

        try:
            carts = self.repo.list_carts(uid, include_deleted, limit, offset)
            total = self.repo.count_carts(uid, include_deleted)
            page = [to_cart_out(c) for c in carts]
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Failed to list carts: {e}")
            raise InternalError("failed to list carts") from e

        logger.info(f"Listed {len(page)} carts (total: {total})")
        return CartListOut(carts=page, total=total)

    def force_delete_cart(self, cart_id) -> DeleteOut:
        cid = parse_uuid(cart_id, "cart_id")
        logger.info(f"ForceDeleteCart {cid} (admin operation)")

        with atomic(self.repo, "force_delete_cart"):
            # items first, then the cart
            removed = self.repo.delete_cart_items(cid)
            if self.repo.delete_cart(cid) == 0:
                logger.info(f"Cart not found for deletion: {cid}")
                raise NotFound(CART_NOT_FOUND)

        logger.info(f"Cart force deleted: {cid} ({removed} items)")
        return DeleteOut(id=cid, success=True)

    def restore_cart(self, cart_id) -> CartOut:
        cid = parse_uuid(cart_id, "cart_id")
        logger.info(f"RestoreCart {cid} (admin operation)")

        with atomic(self.repo, "restore_cart"):
            if self.repo.restore_cart(cid, utcnow()) == 0:
                logger.info(f"Cart not found for restoration: {cid}")
                raise NotFound(CART_NOT_FOUND)

        cart = self.repo.get_cart(cid)
        if not cart:
            raise NotFound(CART_NOT_FOUND)

        logger.info(f"Cart restored: {cid}, version {cart.version}")
        return to_cart_out(cart)

    def export_carts(
        self,
        user_id=None,
        include_deleted: bool = False,
        limit: int = 0,
        offset: int = 0,
    ) -> Iterator[CartOut]:
        """
        Returns a lazy iterator over matching carts.

        Arguments are validated eagerly; rows are fetched in batches of
        ``export_batch_size`` only while the iterator is consumed. Each call
        starts a fresh query.
        """
        uid = parse_optional_uuid(user_id, "user_id")
        require_non_negative(limit, "limit")
        require_non_negative(offset, "offset")
        logger.info(
            f"ExportCarts (limit: {limit}, offset: {offset}, user_id: {uid}, include_deleted: {include_deleted})"
        )
        return self._export(uid, include_deleted, limit, offset)

    def _export(self, user_id: UUID | None, include_deleted: bool, limit: int, offset: int) -> Iterator[CartOut]:
        exported = 0
        try:
            for cart in self.repo.iter_carts(user_id, include_deleted, limit, offset, self.export_batch_size):
                yield to_cart_out(cart)
                exported += 1
        except SQLAlchemyError as e:
            logger.error(f"Failed to retrieve carts for export: {e}")
            raise InternalError("failed to retrieve carts for export") from e

        logger.info(f"Exported {exported} carts")
