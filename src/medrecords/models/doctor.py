"""Doctor record model."""
from __future__ import annotations

import uuid

from sqlalchemy import CheckConstraint, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ..db.session import Base
from .mixins import SoftDeleteMixin, TimestampMixin


def new_record_id() -> str:
    return str(uuid.uuid4())


class Doctor(SoftDeleteMixin, TimestampMixin, Base):
    """
    Doctor entity managed from the admin Doctors page.

    Attributes:
        id: Opaque UUID string
        name: Required display name
        specialization, email, phone: Optional contact/profile data
        experience: Years of practice (>= 0)
        image_url / image_path: Profile image in the doctor-images bucket
        deleted_at: Soft-delete marker (NULL = active)
    """

    __tablename__ = "doctors"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_record_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    specialization: Mapped[str | None] = mapped_column(String(200), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    experience: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_path: Mapped[str | None] = mapped_column(String(500), nullable=True)

    __table_args__ = (
        CheckConstraint("experience >= 0", name="ck_doctors_experience_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Doctor(id='{self.id}', name='{self.name}', deleted={self.is_deleted})>"
