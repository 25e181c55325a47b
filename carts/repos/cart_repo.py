# carts/repos/cart_repo.py
from datetime import datetime
from typing import Any, Dict, Iterator, List
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session, selectinload

from carts.data.models.cart import CartModel
from carts.data.models.cart_item import CartItemModel


def _active(now: datetime):
    return (CartModel.deleted_at.is_(None), CartModel.expires_at > now)


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    # carts
    def get_cart(self, cart_id: UUID) -> CartModel | None:
        stmt = (
            select(CartModel)
            .where(CartModel.id == cart_id)
            .options(selectinload(CartModel.items))
            .execution_options(populate_existing=True)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def get_active_cart(self, cart_id: UUID, now: datetime, for_update: bool = False) -> CartModel | None:
        stmt = (
            select(CartModel)
            .where(CartModel.id == cart_id, *_active(now))
            .options(selectinload(CartModel.items))
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update(of=CartModel)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_active_carts_by_user(self, user_id: UUID, now: datetime, for_update: bool = False) -> List[CartModel]:
        stmt = (
            select(CartModel)
            .where(CartModel.user_id == user_id, *_active(now))
            .options(selectinload(CartModel.items))
            .order_by(CartModel.created_at.desc())
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update(of=CartModel)
        return list(self.db.execute(stmt).scalars().all())

    def create_cart(self, cart: CartModel) -> CartModel:
        self.db.add(cart)
        self.db.flush()
        return cart

    def update_cart_version(
        self,
        cart_id: UUID,
        old_version: int,
        new_data: Dict[str, Any],
        active_at: datetime | None = None,
    ) -> int:
        """
        Conditional write: UPDATE carts SET ... WHERE id = :id AND version = :old.

        With ``active_at`` the cart must also still be active at that instant.
        Returns the affected row count; anything but 1 means the caller lost the race.
        """
        stmt = update(CartModel).where(
            CartModel.id == cart_id,
            CartModel.version == old_version,
        )
        if active_at is not None:
            stmt = stmt.where(*_active(active_at))
        stmt = stmt.values(**new_data).execution_options(synchronize_session=False)
        return self.db.execute(stmt).rowcount

    def renew_cart(self, cart_id: UUID, now: datetime, expires_at: datetime) -> int:
        """Slides the TTL of a cart that is still active at ``now``; version untouched."""
        stmt = (
            update(CartModel)
            .where(CartModel.id == cart_id, *_active(now))
            .values(last_activity_at=now, expires_at=expires_at, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount

    def restore_cart(self, cart_id: UUID, now: datetime) -> int:
        stmt = (
            update(CartModel)
            .where(CartModel.id == cart_id)
            .values(
                deleted_at=None,
                version=CartModel.version + 1,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount

    def delete_cart(self, cart_id: UUID) -> int:
        stmt = delete(CartModel).where(CartModel.id == cart_id).execution_options(synchronize_session=False)
        return self.db.execute(stmt).rowcount

    # items
    def get_cart_item(self, cart_id: UUID, product_id: UUID) -> CartItemModel | None:
        stmt = select(CartItemModel).where(
            CartItemModel.cart_id == cart_id,
            CartItemModel.product_id == product_id,
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def get_cart_item_by_id(self, cart_id: UUID, item_id: UUID) -> CartItemModel | None:
        stmt = select(CartItemModel).where(
            CartItemModel.id == item_id,
            CartItemModel.cart_id == cart_id,
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def add_cart_item(self, item: CartItemModel) -> CartItemModel:
        self.db.add(item)
        self.db.flush()
        return item

    def increment_item_quantity(self, item_id: UUID, quantity: int, now: datetime) -> int:
        # quantity = quantity + :n evaluated by the database
        stmt = (
            update(CartItemModel)
            .where(CartItemModel.id == item_id)
            .values(quantity=CartItemModel.quantity + quantity, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount

    def set_item_quantity(self, item: CartItemModel, quantity: int, now: datetime) -> CartItemModel:
        item.quantity = quantity
        item.updated_at = now
        self.db.flush()
        return item

    def delete_cart_item(self, item: CartItemModel) -> None:
        self.db.delete(item)
        self.db.flush()

    def delete_cart_items(self, cart_id: UUID) -> int:
        stmt = (
            delete(CartItemModel)
            .where(CartItemModel.cart_id == cart_id)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount

    # admin listing
    def _filtered(self, stmt, user_id: UUID | None, include_deleted: bool):
        if user_id is not None:
            stmt = stmt.where(CartModel.user_id == user_id)
        if not include_deleted:
            stmt = stmt.where(CartModel.deleted_at.is_(None))
        return stmt

    def _page(self, user_id: UUID | None, include_deleted: bool, limit: int, offset: int):
        stmt = self._filtered(
            select(CartModel).options(selectinload(CartModel.items)),
            user_id,
            include_deleted,
        ).order_by(CartModel.created_at, CartModel.id)
        if limit > 0:
            stmt = stmt.limit(limit)
        if offset > 0:
            stmt = stmt.offset(offset)
        return stmt

    def list_carts(self, user_id: UUID | None, include_deleted: bool, limit: int, offset: int) -> List[CartModel]:
        stmt = self._page(user_id, include_deleted, limit, offset)
        return list(self.db.execute(stmt).scalars().all())

    def count_carts(self, user_id: UUID | None, include_deleted: bool) -> int:
        stmt = self._filtered(select(func.count(CartModel.id)), user_id, include_deleted)
        return self.db.execute(stmt).scalar_one()

    def iter_carts(
        self,
        user_id: UUID | None,
        include_deleted: bool,
        limit: int,
        offset: int,
        batch_size: int,
    ) -> Iterator[CartModel]:
        stmt = self._page(user_id, include_deleted, limit, offset).execution_options(yield_per=batch_size)
        yield from self.db.execute(stmt).scalars()

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
