"""
Audit Log Model.

Append-only trail of mutations to the doctors and patients tables. The
application only ever inserts; the PostgreSQL migration additionally
installs a trigger that rejects UPDATE and DELETE on this table.
"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ..db.session import Base
from .mixins import utc_now


class AuditLog(Base):
    """
    One recorded mutation.

    Attributes:
        id: Monotonic integer, follows commit order
        action: INSERT | UPDATE | SOFT_DELETE | RESTORE | DELETE
        table_name: doctors | patients
        record_id: Id of the mutated row
        user_id: Acting staff user (NULL if that user was later removed)
        created_at: When the mutation was recorded
    """

    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    action: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    table_name: Mapped[str] = mapped_column(String(50), nullable=False)
    record_id: Mapped[str] = mapped_column(String(36), nullable=False)
    user_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("staff_users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
        index=True,
    )

    __table_args__ = (
        Index("ix_audit_logs_table_record", "table_name", "record_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<AuditLog(id={self.id}, action='{self.action}', "
            f"table='{self.table_name}', record='{self.record_id}')>"
        )
