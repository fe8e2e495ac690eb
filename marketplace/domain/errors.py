# marketplace/domain/errors.py
"""
Bledy domenowe. Kod bledu (np. NOT_ENOUGH_STOCK) jest kontraktem API,
message to tylko tekst dla uzytkownika.
"""
from typing import Any

MESSAGES = {
    # koszyk
    "PRODUCT_NOT_FOUND": "Product not found",
    "PRODUCT_NOT_AVAILABLE": "Product is not available",
    "AUCTION_ITEM_NOT_ALLOWED_IN_CART": "Auction items cannot be added to cart. Please bid on the auction page.",
    "NOT_ENOUGH_STOCK": "Insufficient stock available",
    "INVALID_QUANTITY": "Invalid quantity",
    "CART_ITEM_NOT_FOUND": "Cart item not found",
    "UNAUTHORIZED": "Unauthorized to modify this item",
    "USER_OR_SESSION_REQUIRED": "Invalid cart session",
    "CART_EMPTY": "Cart is empty",
    "CART_BUSY": "Cart is being modified by another request, please retry",
    "CART_VALIDATION_FAILED": "Some items in your cart are not available",
    "NEGOTIATION_REQUIRED": "Cart contains negotiable items. Please finalize prices before checkout.",
    "AUTHENTICATION_REQUIRED": "Authentication required",
    "COUPON_CODE_REQUIRED": "Coupon code is required",
    "STATE_REQUIRED": "State is required for shipping estimate",
    "CHECKOUT_SESSION_NOT_FOUND": "Checkout session not found",
    # kupony
    "INVALID_COUPON": "Invalid or expired coupon code",
    "COUPON_NOT_STARTED": "This coupon is not yet active",
    "COUPON_EXPIRED": "This coupon has expired",
    "MIN_ORDER_NOT_MET": "Minimum order value not met",
    "COUPON_USAGE_LIMIT_REACHED": "This coupon has reached its usage limit",
    "USER_USAGE_LIMIT_REACHED": "You have already used this coupon maximum times",
    "COUPON_NOT_APPLICABLE": "This coupon is not applicable to items in your cart",
    # rfq / oferty
    "RFQ_NOT_FOUND": "RFQ not found",
    "RFQ_NOT_ACTIVE": "RFQ is not accepting quotes",
    "INVALID_BUDGET": "Minimum budget must be less than maximum budget",
    "INVALID_QUOTE": "Invalid quote details",
    "DUPLICATE_QUOTE": "You have already submitted a quote for this RFQ",
    "SELF_QUOTE_NOT_ALLOWED": "You cannot quote on your own RFQ",
    "QUOTE_NOT_FOUND": "Quote not found or access denied",
    "QUOTE_NOT_PENDING": "Quote is no longer pending",
    "QUOTE_EXPIRED": "Quote has expired",
    "NUMBER_GENERATION_FAILED": "Could not generate a unique number, please retry",
    # ogolne
    "VALIDATION_ERROR": "Invalid request",
    "INTERNAL_SERVER_ERROR": "Something went wrong",
}


class MarketplaceError(Exception):
    status_code = 500

    def __init__(self, code: str, message: str | None = None, data: Any = None):
        self.code = code
        self.message = message or MESSAGES.get(code, code)
        self.data = data
        super().__init__(self.message)

    def to_response(self) -> dict:
        body = {"success": False, "message": self.message, "error": self.code}
        if self.data is not None:
            body["data"] = self.data
        return body


class BusinessRuleError(MarketplaceError, ValueError):
    status_code = 400


class NotFoundError(MarketplaceError, LookupError):
    status_code = 404


class AccessDeniedError(MarketplaceError, PermissionError):
    status_code = 403


class AuthenticationRequiredError(MarketplaceError):
    status_code = 401

    def __init__(self, message: str | None = None):
        super().__init__("AUTHENTICATION_REQUIRED", message)


class ConflictError(MarketplaceError, RuntimeError):
    status_code = 409
