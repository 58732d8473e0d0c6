from models.base_model import Base, BaseModel
from sqlalchemy import Column, String
from sqlalchemy.orm import relationship

from utils.security import hash_password


class User(BaseModel, Base):
    __tablename__ = "users"
    name = Column(String(255), nullable=False)
    # Case-sensitive as stored; no normalization on the way in.
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)

    tasks = relationship("Task", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    refresh_tokens = relationship(
        "RefreshToken", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )

    @property
    def password(self):
        raise AttributeError("Password: Write-only field")

    @password.setter
    def password(self, value):
        self.password_hash = hash_password(value)
