from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Index, String
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base

TITLE_MAX_LENGTH = 500


class Task(BaseModel, Base):
    __tablename__ = "tasks"

    title = Column(String(TITLE_MAX_LENGTH), nullable=False)
    completed = Column(Boolean, nullable=False, default=False)
    # Every query filters on the owner
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    user = relationship("User", back_populates="tasks")

    __table_args__ = (
        CheckConstraint("length(title) >= 1", name="ck_tasks_title_nonempty"),
        Index("ix_tasks_user_created", "user_id", "created_at"),
    )
