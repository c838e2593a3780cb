"""Patient record model."""
from __future__ import annotations

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ..db.session import Base
from .doctor import new_record_id
from .mixins import SoftDeleteMixin, TimestampMixin


class Patient(SoftDeleteMixin, TimestampMixin, Base):
    """
    Patient entity managed by any staff user.

    ``assigned_doctor_id`` may point at a soft-deleted doctor after that
    doctor is removed; listings then show no doctor name until the doctor is
    restored or the patient is reassigned.
    """

    __tablename__ = "patients"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_record_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    age: Mapped[int] = mapped_column(Integer, nullable=False)
    gender: Mapped[str | None] = mapped_column(String(10), nullable=True)
    contact: Mapped[str | None] = mapped_column(String(100), nullable=True)
    diagnosis: Mapped[str | None] = mapped_column(Text, nullable=True)

    assigned_doctor_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("doctors.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    report_image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    report_image_path: Mapped[str | None] = mapped_column(String(500), nullable=True)

    __table_args__ = (
        CheckConstraint("age > 0", name="ck_patients_age_positive"),
    )

    def __repr__(self) -> str:
        return f"<Patient(id='{self.id}', deleted={self.is_deleted})>"
