#import wszystkich modeli zeby SQLAlchemy je zarejestrowal w base metadata

from marketplace.data.models.user import UserModel
from marketplace.data.models.product import ProductModel
from marketplace.data.models.cart import CartModel, CartSessionModel
from marketplace.data.models.cart_item import CartItemModel
from marketplace.data.models.coupon import CouponModel, CouponUsageModel
from marketplace.data.models.shipping_zone import ShippingZoneModel
from marketplace.data.models.checkout_session import CheckoutSessionModel
from marketplace.data.models.rfq import RFQModel
from marketplace.data.models.quote import QuoteModel

__all__ = [
    "UserModel",
    "ProductModel",
    "CartModel",
    "CartSessionModel",
    "CartItemModel",
    "CouponModel",
    "CouponUsageModel",
    "ShippingZoneModel",
    "CheckoutSessionModel",
    "RFQModel",
    "QuoteModel",
]
