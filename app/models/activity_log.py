from sqlalchemy import String, Integer, Text, DateTime, ForeignKey, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime
from app.database import Base


class DepositActivity(Base):
    __tablename__ = "deposit_activities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id"), nullable=False, index=True
    )
    actor_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("users.id"), nullable=True
    )  # Nullable for system actions (CLI reload)

    action: Mapped[str] = mapped_column(
        String(100), nullable=False
    )  # defend_used, assignment_inserted, deposit_reloaded, etc.
    description: Mapped[str] = mapped_column(Text, nullable=False)
    extra_data: Mapped[dict] = mapped_column(
        JSON, nullable=True
    )  # Additional data (e.g., old_amount, new_amount)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, nullable=False, index=True
    )

    # Composite index for per-user timeline queries
    __table_args__ = (Index("ix_activity_user_created", "user_id", "created_at"),)

    def __repr__(self):
        return f"<DepositActivity {self.action} at {self.created_at}>"
