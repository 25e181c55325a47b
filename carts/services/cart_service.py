# carts/services/cart_service.py
from datetime import datetime, timedelta
from uuid import UUID, uuid4

from redis.exceptions import RedisError
from sqlalchemy.orm import Session
from tenacity import RetryError

from carts.data.models.cart import CartModel, utcnow
from carts.data.models.cart_item import CartItemModel
from carts.domain.mappers import to_cart_out
from carts.domain.schemas import CartOut, DeleteOut
from carts.errors import (
    CART_ITEM_NOT_FOUND,
    CART_NOT_FOUND_OR_EXPIRED,
    VERSION_MISMATCH,
    CartItemNotFound,
    InternalError,
    NotFoundOrExpired,
    VersionConflict,
)
from carts.repos.cart_repo import CartRepo
from carts.services.lock_service import LockService
from carts.services.transaction import atomic
from carts.utils.logging import get_logger
from carts.utils.retry import wait_until_true
from carts.utils.settings import (
    CART_CREATE_LOCK_TTL_SECONDS,
    CART_CREATE_LOCK_WAIT_SECONDS,
    CART_TTL_SECONDS,
)
from carts.utils.validators import parse_uuid, require_positive

logger = get_logger(__name__)


class CartService:
    """
    Cart lifecycle use cases.

    Queries (get, get-or-create) renew the sliding TTL without touching the
    version. Commands (add, update, remove, clear, soft delete) run as one
    transaction each:

    1. lock and read the active cart (deleted_at IS NULL AND expires_at > now)
    2. check the caller's expected version
    3. change the items
    4. UPDATE carts SET version = v + 1 ... WHERE id = :id AND version = v,
       which must hit exactly one row

    A failed check rolls everything back. VersionConflict is never retried
    here; the caller re-fetches and decides.
    """

    def __init__(
        self,
        db: Session,
        lock_service: LockService | None = None,
        ttl_seconds: int = CART_TTL_SECONDS,
    ):
        self.repo = CartRepo(db)
        self.lock_service = lock_service
        self.ttl = timedelta(seconds=ttl_seconds)

    # query
    def get_or_create_cart(self, user_id) -> CartOut:
        uid = parse_uuid(user_id, "user_id")
        logger.info(f"GetOrCreateCart for user {uid}")

        if self.lock_service is None:
            return self._get_or_create(uid)

        # serialize query-then-insert per user
        token = uuid4().hex
        acquire = wait_until_true(CART_CREATE_LOCK_WAIT_SECONDS)(self.lock_service.acquire_user_lock)
        try:
            acquire(uid, token, CART_CREATE_LOCK_TTL_SECONDS)
        except RetryError as e:
            logger.error(f"Timed out waiting for cart creation lock of user {uid}")
            raise InternalError("timed out waiting for cart creation lock") from e
        except RedisError as e:
            logger.error(f"Lock service unavailable: {e}")
            raise InternalError("cart creation lock unavailable") from e

        try:
            return self._get_or_create(uid)
        finally:
            try:
                self.lock_service.release_user_lock(uid, token)
            except RedisError as e:
                # the lock expires on its own after CART_CREATE_LOCK_TTL_SECONDS
                logger.warning(f"Failed to release cart creation lock of user {uid}: {e}")

    def _get_or_create(self, user_id: UUID) -> CartOut:
        now = utcnow()
        with atomic(self.repo, "get_or_create_cart"):
            active = self.repo.get_active_carts_by_user(user_id, now, for_update=True)
            if len(active) > 1:
                logger.warning(
                    f"User {user_id} has {len(active)} active carts, using newest {active[0].id}"
                )

            # newest first; a cart deleted since the read no longer renews
            cart = next((c for c in active if self._renew(c.id, now)), None)
            if cart is not None:
                logger.info(f"Retrieved existing cart {cart.id} for user {user_id}")
            else:
                cart = self.repo.create_cart(
                    CartModel(
                        user_id=user_id,
                        version=1,
                        expires_at=now + self.ttl,
                        last_activity_at=now,
                        created_at=now,
                        updated_at=now,
                    )
                )
                logger.info(f"Created new cart {cart.id} for user {user_id}")

            return self._load(cart.id)

    def get_cart(self, cart_id) -> CartOut:
        cid = parse_uuid(cart_id, "cart_id")
        logger.info(f"GetCart {cid}")

        now = utcnow()
        with atomic(self.repo, "get_cart"):
            cart = self.repo.get_active_cart(cid, now, for_update=True)
            if not cart or not self._renew(cid, now):
                logger.info(f"Cart not found or expired: {cid}")
                raise NotFoundOrExpired(CART_NOT_FOUND_OR_EXPIRED)
            return self._load(cid)

    # commands
    def add_item(self, cart_id, product_id, quantity: int, expected_version: int | None = None) -> CartOut:
        cid = parse_uuid(cart_id, "cart_id")
        pid = parse_uuid(product_id, "product_id")
        require_positive(quantity, "quantity")
        if expected_version is not None:
            require_positive(expected_version, "version")
        logger.info(f"AddItem cart {cid} product {pid} quantity {quantity}")

        now = utcnow()
        with atomic(self.repo, "add_item"):
            cart = self._active_cart_for_update(cid, now, expected_version)

            existing = self.repo.get_cart_item(cid, pid)
            if existing:
                logger.info(
                    f"Product {pid} already in cart {cid}, quantity "
                    f"{existing.quantity} -> {existing.quantity + quantity}"
                )
                self.repo.increment_item_quantity(existing.id, quantity, now)
            else:
                self.repo.add_cart_item(
                    CartItemModel(
                        cart_id=cid,
                        product_id=pid,
                        quantity=quantity,
                        created_at=now,
                        updated_at=now,
                    )
                )

            new_version = self._bump(cart, now, renew=True)

        logger.info(f"Added product {pid} to cart {cid}, version {new_version}")
        return self._load(cid)

    def update_item(self, cart_id, item_id, quantity: int, expected_version: int) -> CartOut:
        cid = parse_uuid(cart_id, "cart_id")
        iid = parse_uuid(item_id, "item_id")
        require_positive(quantity, "quantity")
        require_positive(expected_version, "version")
        logger.info(f"UpdateItem cart {cid} item {iid} quantity {quantity} version {expected_version}")

        now = utcnow()
        with atomic(self.repo, "update_item"):
            cart = self._active_cart_for_update(cid, now, expected_version)
            item = self._item(cid, iid)
            self.repo.set_item_quantity(item, quantity, now)
            new_version = self._bump(cart, now, renew=True)

        logger.info(f"Updated item {iid} in cart {cid}, version {new_version}")
        return self._load(cid)

    def remove_item(self, cart_id, item_id, expected_version: int) -> CartOut:
        cid = parse_uuid(cart_id, "cart_id")
        iid = parse_uuid(item_id, "item_id")
        require_positive(expected_version, "version")
        logger.info(f"RemoveItem cart {cid} item {iid} version {expected_version}")

        now = utcnow()
        with atomic(self.repo, "remove_item"):
            cart = self._active_cart_for_update(cid, now, expected_version)
            item = self._item(cid, iid)
            self.repo.delete_cart_item(item)
            new_version = self._bump(cart, now, renew=True)

        logger.info(f"Removed item {iid} from cart {cid}, version {new_version}")
        return self._load(cid)

    def clear_cart(self, cart_id, expected_version: int) -> CartOut:
        cid = parse_uuid(cart_id, "cart_id")
        require_positive(expected_version, "version")
        logger.info(f"ClearCart {cid} version {expected_version}")

        now = utcnow()
        with atomic(self.repo, "clear_cart"):
            cart = self._active_cart_for_update(cid, now, expected_version)
            removed = self.repo.delete_cart_items(cid)
            new_version = self._bump(cart, now, renew=True)

        logger.info(f"Cleared {removed} items from cart {cid}, version {new_version}")
        return self._load(cid)

    def soft_delete_cart(self, cart_id, expected_version: int) -> DeleteOut:
        cid = parse_uuid(cart_id, "cart_id")
        require_positive(expected_version, "version")
        logger.info(f"SoftDeleteCart {cid} version {expected_version}")

        now = utcnow()
        with atomic(self.repo, "soft_delete_cart"):
            cart = self._active_cart_for_update(cid, now, expected_version)
            self._bump(cart, now, deleted_at=now)

        logger.info(f"Cart soft deleted: {cid}")
        return DeleteOut(id=cid, success=True)

    # helpers
    def _renew(self, cart_id: UUID, now: datetime) -> bool:
        # UPDATE carts SET expires_at = ... WHERE id = :id AND deleted_at IS NULL AND expires_at > :now
        return self.repo.renew_cart(cart_id, now, now + self.ttl) == 1

    def _active_cart_for_update(self, cart_id: UUID, now: datetime, expected_version: int | None) -> CartModel:
        cart = self.repo.get_active_cart(cart_id, now, for_update=True)
        if not cart:
            logger.info(f"Cart not found or expired: {cart_id}")
            raise NotFoundOrExpired(CART_NOT_FOUND_OR_EXPIRED)

        if expected_version is not None and cart.version != expected_version:
            logger.info(
                f"Version mismatch on cart {cart_id}: expected {expected_version}, current {cart.version}"
            )
            raise VersionConflict(VERSION_MISMATCH)

        return cart

    def _item(self, cart_id: UUID, item_id: UUID) -> CartItemModel:
        item = self.repo.get_cart_item_by_id(cart_id, item_id)
        if not item:
            logger.info(f"Cart item not found: {item_id} in cart {cart_id}")
            raise CartItemNotFound(CART_ITEM_NOT_FOUND)
        return item

    def _bump(self, cart: CartModel, now: datetime, renew: bool = False, **changes) -> int:
        old_version = cart.version
        new_data = {"version": old_version + 1, "updated_at": now, **changes}
        if renew:
            new_data["last_activity_at"] = now
            new_data["expires_at"] = now + self.ttl

        # e.g. UPDATE carts SET version = 3 WHERE id = :id AND version = 2
        rowcount = self.repo.update_cart_version(
            cart_id=cart.id,
            old_version=old_version,
            new_data=new_data,
            active_at=now,
        )
        if rowcount != 1:
            logger.warning(f"Concurrent modification of cart {cart.id} at version {old_version}")
            raise VersionConflict(VERSION_MISMATCH)

        return old_version + 1

    def _load(self, cart_id: UUID) -> CartOut:
        cart = self.repo.get_cart(cart_id)
        if not cart:
            # force-deleted between commit and re-read
            raise NotFoundOrExpired(CART_NOT_FOUND_OR_EXPIRED)
        return to_cart_out(cart)
