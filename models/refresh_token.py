"""
RefreshToken model: the refresh-token ledger. A signed refresh token is only
honoured while a row with its jti exists, so deleting the row revokes it.
Fields:
- jti (unique) - random per-issuance id mirrored in the token
- user_id (String(36)) - FK to users.id
- expires_at - absolute UTC expiry
"""
from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base


class RefreshToken(BaseModel, Base):
    __tablename__ = "refresh_tokens"

    jti = Column(String(64), nullable=False, unique=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    user = relationship("User", back_populates="refresh_tokens")

    def __repr__(self):
        return "<RefreshToken>"
