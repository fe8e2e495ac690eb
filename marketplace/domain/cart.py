# marketplace/domain/cart.py
from dataclasses import dataclass, field, asdict
from datetime import datetime
from decimal import Decimal

from marketplace.utils.money import to_decimal
from marketplace.utils.settings import DEFAULT_GST_PERCENT

NEGOTIABLE_LISTING_TYPES = ("rfq", "negotiable")


@dataclass(frozen=True)
class CartIdentity:
    """Kto jest wlascicielem koszyka: zalogowany user albo token goscia."""

    user_id: int | None = None
    session_token: str | None = None

    @property
    def is_guest(self) -> bool:
        return self.user_id is None

    @property
    def lock_key(self) -> str:
        if self.user_id is not None:
            return f"cart:user:{self.user_id}:lock"
        return f"cart:session:{self.session_token}:lock"


@dataclass
class Availability:
    is_available: bool = True
    price_changed: bool = False
    stock_changed: bool = False
    current_stock: int = 0


@dataclass
class CartLine:
    """
    Znormalizowana pozycja koszyka: snapshot z cart_items + aktualny stan produktu.
    Tylko na tym rekordzie pracuje pricing i walidacja kuponow.
    """

    item_id: int | None
    product_id: int
    quantity: int
    price: Decimal
    original_price: Decimal
    discount_percent: Decimal = Decimal("0")
    gst_percent: Decimal = DEFAULT_GST_PERCENT
    category_id: int | None = None
    title: str = "Product Unavailable"
    slug: str | None = None
    image: str | None = None
    listing_type: str = "fixed"
    condition: str | None = None
    unit: str | None = None
    supplier_id: int | None = None
    seller_name: str | None = None
    seller_verified: bool | None = None
    availability: Availability = field(default_factory=Availability)
    added_at: datetime | None = None

    @property
    def is_negotiable(self) -> bool:
        return self.listing_type in NEGOTIABLE_LISTING_TYPES

    def to_dict(self) -> dict:
        data = asdict(self)
        data["seller"] = {
            "id": data.pop("supplier_id"),
            "name": data.pop("seller_name"),
            "verified": data.pop("seller_verified"),
        }
        return data


def build_cart_line(item, product, supplier=None) -> CartLine:
    """
    Sklada CartLine z wiersza cart_items i (opcjonalnie brakujacego) produktu.
    Flagi dostepnosci sa liczone tutaj, za kazdym odczytem.
    """
    snapshot_price = to_decimal(item.price_at_add)

    if product is None:
        return CartLine(
            item_id=item.id,
            product_id=item.product_id,
            quantity=item.quantity,
            price=snapshot_price,
            original_price=snapshot_price,
            discount_percent=to_decimal(item.discount_percent_at_add),
            gst_percent=to_decimal(item.gst_percent if item.gst_percent is not None else DEFAULT_GST_PERCENT),
            listing_type=item.listing_type,
            condition=item.condition,
            unit=item.unit,
            supplier_id=item.supplier_id,
            availability=Availability(is_available=False, current_stock=0),
            added_at=item.added_at,
        )

    live_price = to_decimal(product.price_after) if product.price_after is not None else snapshot_price
    discount = product.discount_percent if product.discount_percent is not None else item.discount_percent_at_add

    availability = Availability(
        is_available=product.status == "active",
        price_changed=live_price != snapshot_price,
        stock_changed=product.quantity < item.quantity,
        current_stock=product.quantity or 0,
    )

    return CartLine(
        item_id=item.id,
        product_id=item.product_id,
        quantity=item.quantity,
        price=live_price,
        original_price=snapshot_price,
        discount_percent=to_decimal(discount),
        gst_percent=to_decimal(item.gst_percent if item.gst_percent is not None else DEFAULT_GST_PERCENT),
        category_id=product.category_id,
        title=product.title,
        slug=product.slug,
        image=product.image_url,
        listing_type=item.listing_type,
        condition=item.condition,
        unit=item.unit,
        supplier_id=item.supplier_id,
        seller_name=supplier.company_name if supplier else None,
        seller_verified=supplier.is_verified if supplier else None,
        availability=availability,
        added_at=item.added_at,
    )
