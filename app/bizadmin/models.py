from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

if TYPE_CHECKING:
    from app.bizadmin.modules.teams.models import Team


class Base(DeclarativeBase):
    pass


USER_ROLES = ("admin", "manager", "editor", "designer", "video-shooter")


class User(Base):
    """Staff member. Customers log in separately (see modules.customers)."""

    __tablename__ = "users"
    __table_args__ = (Index("idx_users_role", "role"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone_number: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True, unique=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(32), nullable=False, default="designer")
    team_id: Mapped[int | None] = mapped_column(ForeignKey("teams.id", ondelete="SET NULL"), nullable=True)
    permissions: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    team: Mapped["Team | None"] = relationship("Team", lazy="selectin")


class AuditEvent(Base):
    """
    Append-only audit trail event.
    Actors are either staff users or customers, so the actor is stored denormalized.
    """

    __tablename__ = "audit_events"
    __table_args__ = (Index("idx_audit_entity", "entity_type", "entity_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    request_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    client_ip: Mapped[str | None] = mapped_column(String(64), nullable=True)

    actor_type: Mapped[str | None] = mapped_column(String(16), nullable=True)  # "user" | "customer"
    actor_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    actor_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    action: Mapped[str] = mapped_column(String(128), nullable=False)  # e.g. "customer.create"
    entity_type: Mapped[str | None] = mapped_column(String(128), nullable=True)
    entity_id: Mapped[str | None] = mapped_column(String(128), nullable=True)

    reason: Mapped[str | None] = mapped_column(String(512), nullable=True)
    metadata_json: Mapped[str | None] = mapped_column(Text, nullable=True)  # small JSON string


# Ensure module models are imported so Base.metadata includes their tables.
# (Kept at bottom to avoid circular imports.)
from app.bizadmin.modules.teams.models import Team  # noqa: E402,F401
from app.bizadmin.modules.customers.models import Customer  # noqa: E402,F401
from app.bizadmin.modules.contracts.models import Contract  # noqa: E402,F401
from app.bizadmin.modules.services.models import Service, ServiceRequest  # noqa: E402,F401
from app.bizadmin.modules.projects.models import Project  # noqa: E402,F401
from app.bizadmin.modules.tasks.models import Task  # noqa: E402,F401
from app.bizadmin.modules.transactions.models import Transaction  # noqa: E402,F401
