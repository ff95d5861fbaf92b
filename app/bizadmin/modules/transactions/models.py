from __future__ import annotations

import datetime as dt
from typing import TYPE_CHECKING

from sqlalchemy import Date, DateTime, Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.bizadmin.models import Base

if TYPE_CHECKING:
    from app.bizadmin.models import User
    from app.bizadmin.modules.customers.models import Customer

TRANSACTION_TYPES = ("income", "expense")


class Transaction(Base):
    """Ledger line. `paid` is money going out, `received` money coming in."""

    __tablename__ = "transactions"
    __table_args__ = (
        Index("idx_transactions_date", "date"),
        Index("idx_transactions_customer", "customer_id"),
        Index("idx_transactions_user", "user_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    paid: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    received: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    type: Mapped[str] = mapped_column(String(16), nullable=False, default="income")

    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    customer_id: Mapped[int | None] = mapped_column(ForeignKey("customers.id", ondelete="SET NULL"), nullable=True)

    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=dt.datetime.utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=dt.datetime.utcnow)

    user: Mapped["User | None"] = relationship("User", lazy="selectin")
    customer: Mapped["Customer | None"] = relationship("Customer", lazy="selectin")
