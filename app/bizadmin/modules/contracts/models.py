from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.bizadmin.models import Base

if TYPE_CHECKING:
    from app.bizadmin.models import User
    from app.bizadmin.modules.customers.models import Customer

CONTRACT_STATUSES = ("draft", "active", "completed", "terminated", "expired")
CONTRACT_TYPES = ("standard", "premium", "enterprise", "custom")


class Contract(Base):
    __tablename__ = "contracts"
    __table_args__ = (
        Index("idx_contracts_customer", "customer_id"),
        Index("idx_contracts_status", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    customer_id: Mapped[int] = mapped_column(ForeignKey("customers.id", ondelete="CASCADE"), nullable=False)
    contract_number: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="draft")
    contract_type: Mapped[str] = mapped_column(String(32), nullable=False, default="standard")
    signed_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    terms: Mapped[str | None] = mapped_column(Text, nullable=True)
    verifier_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    customer: Mapped["Customer"] = relationship("Customer", lazy="selectin")
    verifier: Mapped["User | None"] = relationship("User", lazy="selectin")
