# carts/domain/mappers.py
"""Entity to wire conversion, one explicit function per entity type."""
from datetime import datetime, timezone

from carts.data.models.cart import CartModel
from carts.data.models.cart_item import CartItemModel
from carts.domain.schemas import CartItemOut, CartOut


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def to_cart_item_out(item: CartItemModel) -> CartItemOut:
    return CartItemOut(
        id=item.id,
        cart_id=item.cart_id,
        product_id=item.product_id,
        quantity=item.quantity,
        created_at=_as_utc(item.created_at),
        updated_at=_as_utc(item.updated_at),
    )


def to_cart_out(cart: CartModel) -> CartOut:
    return CartOut(
        id=cart.id,
        user_id=cart.user_id,
        items=[to_cart_item_out(i) for i in cart.items],
        expires_at=_as_utc(cart.expires_at),
        last_activity_at=_as_utc(cart.last_activity_at),
        created_at=_as_utc(cart.created_at),
        updated_at=_as_utc(cart.updated_at),
        deleted_at=_as_utc(cart.deleted_at),
        version=cart.version,
    )
