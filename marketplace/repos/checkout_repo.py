# marketplace/repos/checkout_repo.py
from sqlalchemy.orm import Session

from marketplace.data.models.checkout_session import CheckoutSessionModel


class CheckoutRepo:
    def __init__(self, db: Session):
        self.db = db

    def create_session(self, session: CheckoutSessionModel) -> CheckoutSessionModel:
        self.db.add(session)
        self.db.commit()
        self.db.refresh(session)
        return session

    def get_session(self, session_token: str) -> CheckoutSessionModel | None:
        return (
            self.db.query(CheckoutSessionModel)
            .filter(CheckoutSessionModel.session_token == session_token)
            .one_or_none()
        )
