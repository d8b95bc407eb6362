from sqlalchemy import String, Integer, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship, Mapped, mapped_column
from datetime import datetime
from app.database import Base


class Deposit(Base):
    """Current deposit balance and remaining defense tokens of a user.

    ``amount`` is always recomputable from the user's assignment records,
    see ``deposit_service.reload_deposit``.
    """

    __tablename__ = "deposits"

    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id"), primary_key=True
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    defend_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, onupdate=datetime.now, nullable=False
    )

    user = relationship("User", back_populates="deposit")

    __table_args__ = (
        CheckConstraint("defend_count >= 0", name="ck_deposit_defend_non_negative"),
    )

    def __repr__(self):
        return f"<Deposit {self.user_id}: {self.amount} (defend={self.defend_count})>"
