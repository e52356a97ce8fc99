#import wszystkich modeli zeby SQLAlchemy je zarejestrowal w base metadata

from marketplace.data.models.store import StoreModel
from marketplace.data.models.product import (
    ProductModel,
    ProductVariantModel,
    ChoiceGroupModel,
    ChoiceOptionModel,
)
from marketplace.data.models.cart import CartModel
from marketplace.data.models.cart_item import CartItemModel
from marketplace.data.models.order import OrderModel, OrderItemModel, OrderStatusEventModel

__all__ = [
    "StoreModel",
    "ProductModel",
    "ProductVariantModel",
    "ChoiceGroupModel",
    "ChoiceOptionModel",
    "CartModel",
    "CartItemModel",
    "OrderModel",
    "OrderItemModel",
    "OrderStatusEventModel",
]
