# marketplace/repos/cart_repo.py
from sqlalchemy import select, update, delete, func
from sqlalchemy.orm import Session

from marketplace.data.models.cart import CartModel, CartSessionModel
from marketplace.data.models.cart_item import CartItemModel


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    # koszyki userow
    def get_user_cart(self, user_id: int) -> CartModel | None:
        return self.db.execute(
            select(CartModel).where(CartModel.user_id == user_id)
        ).scalar_one_or_none()

    def create_user_cart(self, user_id: int) -> CartModel:
        cart = CartModel(user_id=user_id)
        self.db.add(cart)
        self.db.flush()
        return cart

    def update_cart(self, cart_id: int, new_data: dict) -> int:
        result = self.db.execute(
            update(CartModel).where(CartModel.id == cart_id).values(**new_data)
        )
        return result.rowcount

    # sesje gosci
    def get_session_by_token(self, session_token: str) -> CartSessionModel | None:
        return self.db.execute(
            select(CartSessionModel).where(CartSessionModel.session_token == session_token)
        ).scalar_one_or_none()

    def create_session(self, session: CartSessionModel) -> CartSessionModel:
        self.db.add(session)
        self.db.flush()
        return session

    def update_session(self, session_id: int, new_data: dict) -> int:
        result = self.db.execute(
            update(CartSessionModel).where(CartSessionModel.id == session_id).values(**new_data)
        )
        return result.rowcount

    # pozycje
    @staticmethod
    def _owner_clause(cart_id: int | None, session_id: int | None):
        if cart_id is not None:
            return CartItemModel.cart_id == cart_id
        return CartItemModel.session_id == session_id

    def get_item(self, item_id: int) -> CartItemModel | None:
        return self.db.get(CartItemModel, item_id)

    def get_items(self, cart_id: int | None = None, session_id: int | None = None) -> list[CartItemModel]:
        return list(
            self.db.execute(
                select(CartItemModel)
                .where(self._owner_clause(cart_id, session_id))
                .order_by(CartItemModel.id)
            ).scalars()
        )

    def get_item_for_product(
        self, product_id: int, cart_id: int | None = None, session_id: int | None = None
    ) -> CartItemModel | None:
        return self.db.execute(
            select(CartItemModel).where(
                self._owner_clause(cart_id, session_id),
                CartItemModel.product_id == product_id,
            )
        ).scalar_one_or_none()

    def count_items(self, cart_id: int | None = None, session_id: int | None = None) -> int:
        return self.db.execute(
            select(func.count(CartItemModel.id)).where(self._owner_clause(cart_id, session_id))
        ).scalar_one()

    def add_item(self, item: CartItemModel) -> CartItemModel:
        self.db.add(item)
        self.db.flush()
        return item

    def update_item(self, item_id: int, new_data: dict) -> int:
        result = self.db.execute(
            update(CartItemModel).where(CartItemModel.id == item_id).values(**new_data)
        )
        return result.rowcount

    def delete_item(self, item_id: int) -> int:
        result = self.db.execute(delete(CartItemModel).where(CartItemModel.id == item_id))
        return result.rowcount

    def delete_items(self, cart_id: int | None = None, session_id: int | None = None) -> int:
        result = self.db.execute(delete(CartItemModel).where(self._owner_clause(cart_id, session_id)))
        return result.rowcount

    def refresh(self, obj):
        self.db.refresh(obj)

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
