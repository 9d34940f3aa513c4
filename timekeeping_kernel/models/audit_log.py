"""
Module: timekeeping_kernel.models.audit_log
Responsibility: ORM persistence for the audit trail written by
    DatabaseAuditSink.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Rows are insert-only (db/immutability.py blocks UPDATE and DELETE).
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from timekeeping_kernel.db.base import Base, UUIDString


class AuditLogEntry(Base):
    """One state transition or signing action, with before/after images."""

    __tablename__ = "audit_log"

    __table_args__ = (
        Index("idx_audit_entity", "entity_type", "entity_id"),
        Index("idx_audit_restaurant", "restaurant_id"),
    )

    actor_user_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    restaurant_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)

    entity_id: Mapped[str] = mapped_column(String(64), nullable=False)

    action: Mapped[str] = mapped_column(String(50), nullable=False)

    before: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    after: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    occurred_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<AuditLogEntry {self.action} {self.entity_type}:{self.entity_id}>"
