# import every model so SQLAlchemy registers it in Base.metadata

from carts.data.models.cart import CartModel
from carts.data.models.cart_item import CartItemModel

__all__ = ["CartModel", "CartItemModel"]
