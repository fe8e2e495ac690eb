from sqlalchemy import select
from sqlalchemy.orm import Session
from marketplace.data.models.user import UserModel


class UserRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: int) -> UserModel | None:
        return self.db.get(UserModel, user_id)

    def get_users(self, user_ids) -> dict[int, UserModel]:
        ids = {i for i in user_ids if i is not None}
        if not ids:
            return {}
        rows = self.db.execute(select(UserModel).where(UserModel.id.in_(ids))).scalars()
        return {u.id: u for u in rows}
