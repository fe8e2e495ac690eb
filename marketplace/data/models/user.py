from sqlalchemy import Column, Integer, String, Boolean
from marketplace.data.database import Base


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String(255), nullable=True)
    company_name = Column(String(255), nullable=True)
    role = Column(String(20), nullable=False, default="buyer")  # buyer, supplier, admin
    is_verified = Column(Boolean, nullable=False, default=False)
