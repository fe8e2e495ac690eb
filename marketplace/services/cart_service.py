# marketplace/services/cart_service.py
import secrets
from datetime import timedelta
from typing import Any, Dict, List, Tuple

from sqlalchemy.orm import Session

from marketplace.data.models.cart import CartModel, CartSessionModel
from marketplace.data.models.cart_item import CartItemModel
from marketplace.domain.cart import CartIdentity, CartLine, build_cart_line
from marketplace.domain.errors import BusinessRuleError, NotFoundError, AccessDeniedError
from marketplace.repos.cart_repo import CartRepo
from marketplace.repos.product_repo import ProductRepo
from marketplace.repos.user_repo import UserRepo
from marketplace.services.coupon_service import CouponService
from marketplace.services.lock_service import LockService
from marketplace.services.pricing_service import PricingService, ShippingInfo, calculate_savings
from marketplace.utils.dates import utcnow, as_utc
from marketplace.utils.money import ZERO, round_money
from marketplace.utils.settings import GUEST_CART_TTL_DAYS, DEFAULT_GST_PERCENT
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


def generate_warnings(lines: List[CartLine]) -> List[Dict[str, Any]]:
    """Jedno ostrzezenie na pozycje: unavailable > stock_changed > price_changed."""
    warnings = []
    for line in lines:
        a = line.availability
        if not a.is_available:
            warnings.append({
                "item_id": line.item_id,
                "type": "unavailable",
                "message": f"{line.title} is no longer available",
            })
        elif a.stock_changed:
            warnings.append({
                "item_id": line.item_id,
                "type": "stock_changed",
                "message": f"Only {a.current_stock} units of {line.title} available",
            })
        elif a.price_changed:
            warnings.append({
                "item_id": line.item_id,
                "type": "price_changed",
                "message": f"Price of {line.title} has changed",
            })
    return warnings


def _item_dict(item: CartItemModel) -> Dict[str, Any]:
    return {
        "item_id": item.id,
        "product_id": item.product_id,
        "quantity": item.quantity,
        "price_at_add": item.price_at_add,
        "discount_percent_at_add": item.discount_percent_at_add,
        "listing_type": item.listing_type,
    }


class CartService:
    """
    commands (add, update, remove, clear, coupon, merge) modyfikuja stan
    query (get, count) tylko odczytuja, poza zapisem flag dostepnosci

    Wlasciciel koszyka to user (carts) albo token goscia (cart_sessions).
    Read-modify-write na pozycjach idzie pod redis lockiem koszyka,
    a unique (cart_id/session_id, product_id) pilnuje reszty w bazie.
    """

    def __init__(
        self,
        db: Session,
        lock_service: LockService,
        pricing_service: PricingService | None = None,
    ):
        self.repo = CartRepo(db)
        self.product_repo = ProductRepo(db)
        self.user_repo = UserRepo(db)
        self.lock_service = lock_service
        self.coupon_service = CouponService(db)
        self.pricing = pricing_service or PricingService(db, self.coupon_service)

    # wlasciciele koszykow
    def get_or_create_user_cart(self, user_id: int) -> CartModel:
        cart = self.repo.get_user_cart(user_id)
        if cart:
            return cart

        logger.info(f"Creating cart for user {user_id}")
        return self.repo.create_user_cart(user_id)

    def find_guest_session(self, session_token: str | None) -> CartSessionModel | None:
        if not session_token:
            return None

        session = self.repo.get_session_by_token(session_token)
        if not session or not session.is_guest or session.merged_to_user_cart:
            return None
        if as_utc(session.expires_at) <= utcnow():
            return None
        return session

    def get_or_create_guest_session(self, session_token: str | None) -> CartSessionModel:
        session = self.find_guest_session(session_token)
        if session:
            return session

        token = secrets.token_hex(32)
        session = self.repo.create_session(
            CartSessionModel(
                session_token=token,
                is_guest=True,
                expires_at=utcnow() + timedelta(days=GUEST_CART_TTL_DAYS),
            )
        )
        logger.info(f"Created guest cart session {session.id}")
        return session

    def _find_owner(self, identity: CartIdentity) -> CartModel | CartSessionModel | None:
        if identity.user_id is not None:
            return self.repo.get_user_cart(identity.user_id)
        return self.find_guest_session(identity.session_token)

    def _get_or_create_owner(self, identity: CartIdentity) -> CartModel | CartSessionModel:
        if identity.user_id is not None:
            return self.get_or_create_user_cart(identity.user_id)
        return self.get_or_create_guest_session(identity.session_token)

    @staticmethod
    def _owner_kwargs(owner) -> Dict[str, int]:
        if isinstance(owner, CartModel):
            return {"cart_id": owner.id}
        return {"session_id": owner.id}

    @staticmethod
    def _owner_identity(identity: CartIdentity, owner) -> CartIdentity:
        if isinstance(owner, CartSessionModel):
            return CartIdentity(session_token=owner.session_token)
        return identity

    def _owns(self, identity: CartIdentity, item: CartItemModel) -> bool:
        owner = self._find_owner(identity)
        if owner is None:
            return False
        if isinstance(owner, CartModel):
            return item.cart_id == owner.id
        return item.session_id == owner.id

    #query - odczyt
    def get_cart_lines(self, identity: CartIdentity) -> Tuple[Any, List[CartLine]]:
        """
        Pozycje z aktualnym stanem produktow. Flagi liczone od nowa,
        zapisywane z powrotem tylko gdy sie zmienily.
        """
        owner = self._find_owner(identity)
        if owner is None:
            return None, []

        items = self.repo.get_items(**self._owner_kwargs(owner))
        if not items:
            return owner, []

        products = self.product_repo.get_products(i.product_id for i in items)
        suppliers = self.user_repo.get_users(i.supplier_id for i in items)

        lines = []
        dirty = False
        for item in items:
            line = build_cart_line(item, products.get(item.product_id), suppliers.get(item.supplier_id))
            a = line.availability
            if (item.is_available, item.price_changed, item.stock_changed) != (
                a.is_available, a.price_changed, a.stock_changed
            ):
                self.repo.update_item(item.id, {
                    "is_available": a.is_available,
                    "price_changed": a.price_changed,
                    "stock_changed": a.stock_changed,
                })
                dirty = True
            lines.append(line)

        if dirty:
            self.repo.commit()

        return owner, lines

    def get_cart(self, identity: CartIdentity, shipping_info: ShippingInfo | None = None) -> Dict[str, Any]:
        owner, lines = self.get_cart_lines(identity)
        coupon_code = owner.coupon_code if owner is not None else None

        summary = self.pricing.calculate_cart_summary(lines, coupon_code, identity.user_id, shipping_info)
        warnings = generate_warnings(lines)

        coupon = None
        if coupon_code:
            coupon = {
                "code": coupon_code,
                "discount": summary["coupon_discount"],
                "valid": summary["coupon_error"] is None,
                "details": summary["coupon_details"],
            }

        return {
            "items": [line.to_dict() for line in lines],
            "summary": summary,
            "savings": calculate_savings(summary),
            "coupon": coupon,
            "item_count": len(lines),
            "has_issues": bool(warnings),
            "warnings": warnings,
        }

    def get_cart_count(self, identity: CartIdentity) -> int:
        owner = self._find_owner(identity)
        if owner is None:
            return 0
        return self.repo.count_items(**self._owner_kwargs(owner))

    #commands
    def add_item(self, identity: CartIdentity, product_id: int, quantity: int) -> Dict[str, Any]:
        if quantity is None or quantity <= 0:
            raise BusinessRuleError("INVALID_QUANTITY")

        product = self.product_repo.get_product(product_id)
        if not product:
            raise NotFoundError("PRODUCT_NOT_FOUND")

        if product.status != "active":
            raise BusinessRuleError("PRODUCT_NOT_AVAILABLE")

        if product.listing_type == "auction":
            raise BusinessRuleError("AUCTION_ITEM_NOT_ALLOWED_IN_CART")

        if quantity > product.quantity:
            raise BusinessRuleError("NOT_ENOUGH_STOCK", f"Only {product.quantity} units available")

        owner = self._get_or_create_owner(identity)
        minted_token = None
        if isinstance(owner, CartSessionModel) and owner.session_token != identity.session_token:
            minted_token = owner.session_token

        lock_identity = self._owner_identity(identity, owner)

        with self.lock_service.hold(lock_identity.lock_key):
            existing = self.repo.get_item_for_product(product_id, **self._owner_kwargs(owner))

            if existing:
                new_quantity = existing.quantity + quantity
                if new_quantity > product.quantity:
                    message = (
                        f"Only {product.quantity} units available. "
                        f"You already have {existing.quantity} in cart"
                    )
                    self.repo.rollback()
                    raise BusinessRuleError("NOT_ENOUGH_STOCK", message)

                logger.info(
                    f"Product {product_id} already in cart, quantity "
                    f"{existing.quantity} -> {new_quantity}"
                )
                self.repo.update_item(existing.id, {"quantity": new_quantity, "updated_at": utcnow()})
                item_id = existing.id
            else:
                logger.info(f"Adding product {product_id} x{quantity} to cart")
                item = self.repo.add_item(
                    CartItemModel(
                        **self._owner_kwargs(owner),
                        product_id=product.id,
                        quantity=quantity,
                        price_at_add=product.price_after,
                        discount_percent_at_add=product.discount_percent or 0,
                        gst_percent=product.gst_percent if product.gst_percent is not None else DEFAULT_GST_PERCENT,
                        listing_type=product.listing_type,
                        condition=product.condition,
                        unit=product.unit,
                        supplier_id=product.supplier_id,
                    )
                )
                item_id = item.id

            self.repo.commit()

        item = self.repo.get_item(item_id)
        self.repo.refresh(item)
        return {"item": _item_dict(item), "session_token": minted_token}

    def update_item_quantity(self, identity: CartIdentity, item_id: int, quantity: int) -> Dict[str, Any]:
        if quantity is None or quantity <= 0:
            raise BusinessRuleError("INVALID_QUANTITY")

        item = self.repo.get_item(item_id)
        if not item:
            raise NotFoundError("CART_ITEM_NOT_FOUND")

        if not self._owns(identity, item):
            raise AccessDeniedError("UNAUTHORIZED")

        owner = self._find_owner(identity)
        with self.lock_service.hold(self._owner_identity(identity, owner).lock_key):
            product = self.product_repo.get_product(item.product_id)
            if not product:
                raise NotFoundError("PRODUCT_NOT_FOUND")

            if quantity > product.quantity:
                raise BusinessRuleError("NOT_ENOUGH_STOCK", f"Only {product.quantity} units available")

            self.repo.update_item(item.id, {
                "quantity": quantity,
                "stock_changed": False,
                "updated_at": utcnow(),
            })
            self.repo.commit()

        logger.info(f"Cart item {item_id} quantity set to {quantity}")
        self.repo.refresh(item)
        return _item_dict(item)

    def remove_item(self, identity: CartIdentity, item_id: int) -> None:
        item = self.repo.get_item(item_id)
        if not item:
            raise NotFoundError("CART_ITEM_NOT_FOUND")

        if not self._owns(identity, item):
            raise AccessDeniedError("UNAUTHORIZED")

        self.repo.delete_item(item.id)
        self.repo.commit()
        logger.info(f"Cart item {item_id} removed")

    def clear_cart(self, identity: CartIdentity) -> int:
        owner = self._find_owner(identity)
        if owner is None:
            return 0

        deleted = self.repo.delete_items(**self._owner_kwargs(owner))
        self._set_coupon(owner, None, ZERO)
        self.repo.commit()

        logger.info(f"Cart cleared, {deleted} items removed")
        return deleted

    def apply_coupon(self, identity: CartIdentity, code: str, discount=ZERO) -> None:
        """Tylko zapis kodu na koszyku. Walidacja jest wczesniej (validate_and_apply_coupon)."""
        owner = self._get_or_create_owner(identity)
        self._set_coupon(owner, code.strip().upper(), discount)
        self.repo.commit()

    def validate_and_apply_coupon(self, identity: CartIdentity, code: str) -> Dict[str, Any]:
        if not code or not code.strip():
            raise BusinessRuleError("COUPON_CODE_REQUIRED")
        code = code.strip().upper()

        _owner, lines = self.get_cart_lines(identity)
        if not lines:
            raise BusinessRuleError("CART_EMPTY")

        subtotal = self.pricing.calculate_cart_summary(lines)["item_subtotal"]
        result = self.coupon_service.validate_and_calculate(code, identity.user_id, subtotal, lines)

        if not result["valid"]:
            data = None
            if "required_amount" in result:
                data = {"required_amount": result["required_amount"]}
            raise BusinessRuleError(result["error"], result["message"], data=data)

        self.apply_coupon(identity, code, result["discount_amount"])
        logger.info(f"Coupon {code} applied, discount {result['discount_amount']}")

        return {
            "coupon": result["coupon"],
            "discount_amount": result["discount_amount"],
            "message": result["message"],
        }

    def remove_coupon(self, identity: CartIdentity) -> None:
        owner = self._find_owner(identity)
        if owner is None:
            return
        self._set_coupon(owner, None, ZERO)
        self.repo.commit()
        logger.info("Coupon removed from cart")

    def _set_coupon(self, owner, code: str | None, discount) -> None:
        if isinstance(owner, CartModel):
            self.repo.update_cart(owner.id, {
                "coupon_code": code,
                "coupon_discount": round_money(discount),
                "updated_at": utcnow(),
            })
        else:
            self.repo.update_session(owner.id, {"coupon_code": code})

    def merge_guest_cart(self, session_token: str, user_id: int) -> Dict[str, int]:
        """
        Pozycje goscia przechodza do koszyka usera: ten sam produkt -> suma ilosci,
        inny -> kopia. Sesja goscia oznaczona jako merged, jej pozycje usuniete.
        """
        merged = 0
        updated = 0

        session = self.repo.get_session_by_token(session_token)
        if not session or not session.is_guest or session.merged_to_user_cart:
            return {"merged_items": merged, "updated_items": updated}

        with self.lock_service.hold(CartIdentity(user_id=user_id).lock_key):
            cart = self.get_or_create_user_cart(user_id)
            guest_items = self.repo.get_items(session_id=session.id)

            for guest_item in guest_items:
                existing = self.repo.get_item_for_product(guest_item.product_id, cart_id=cart.id)
                if existing:
                    self.repo.update_item(existing.id, {
                        "quantity": existing.quantity + guest_item.quantity,
                        "updated_at": utcnow(),
                    })
                    updated += 1
                else:
                    self.repo.add_item(
                        CartItemModel(
                            cart_id=cart.id,
                            product_id=guest_item.product_id,
                            quantity=guest_item.quantity,
                            price_at_add=guest_item.price_at_add,
                            discount_percent_at_add=guest_item.discount_percent_at_add,
                            gst_percent=guest_item.gst_percent,
                            listing_type=guest_item.listing_type,
                            condition=guest_item.condition,
                            unit=guest_item.unit,
                            supplier_id=guest_item.supplier_id,
                        )
                    )
                    merged += 1

            self.repo.delete_items(session_id=session.id)
            self.repo.update_session(session.id, {
                "merged_to_user_cart": True,
                "merged_at": utcnow(),
                "user_id": user_id,
            })
            self.repo.commit()

        logger.info(
            f"Merged guest cart {session.id} into user {user_id} cart: "
            f"{merged} new, {updated} updated"
        )
        return {"merged_items": merged, "updated_items": updated}

    def validate_cart(self, identity: CartIdentity) -> Dict[str, Any]:
        _owner, lines = self.get_cart_lines(identity)
        return self.pricing.validate_stock(lines)

    def estimate_shipping(
        self,
        identity: CartIdentity,
        state: str | None,
        city: str | None = None,
        pincode: str | None = None,
        order_value=None,
    ) -> Dict[str, Any]:
        if not state:
            raise BusinessRuleError("STATE_REQUIRED")

        if order_value is None:
            # bez podanej kwoty liczymy od aktualnego koszyka (po kuponie)
            owner, lines = self.get_cart_lines(identity)
            coupon_code = owner.coupon_code if owner is not None else None
            summary = self.pricing.calculate_cart_summary(lines, coupon_code, identity.user_id)
            order_value = summary["subtotal_after_discounts"]

        return self.pricing.estimate_shipping(state, city, pincode, order_value)
