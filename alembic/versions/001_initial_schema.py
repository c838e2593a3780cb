"""Initial schema.

Revision ID: 001
Revises: None
Create Date: 2026-10-19

Tables created
--------------
- staff_users : console accounts (admin, staff), email + password login
- doctors     : doctor directory, soft-deletable, optional profile image
- patients    : patient records, soft-deletable, optional report image
- audit_logs  : append-only mutation history

Triggers (PostgreSQL only)
--------------------------
- ``audit_logs_append_only`` rejects UPDATE and DELETE on ``audit_logs``.
  The one UPDATE let through is the ``ON DELETE SET NULL`` cascade that
  clears ``user_id`` when a staff user row is removed.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


_APPEND_ONLY_FUNCTION = """
CREATE OR REPLACE FUNCTION audit_logs_reject_mutation() RETURNS trigger AS $$
BEGIN
    IF TG_OP = 'UPDATE'
       AND NEW.user_id IS NULL
       AND NEW.id = OLD.id
       AND NEW.action = OLD.action
       AND NEW.table_name = OLD.table_name
       AND NEW.record_id = OLD.record_id
       AND NEW.created_at = OLD.created_at THEN
        RETURN NEW;
    END IF;
    RAISE EXCEPTION 'audit_logs is append-only (% rejected)', TG_OP;
END;
$$ LANGUAGE plpgsql;
"""

_APPEND_ONLY_TRIGGER = """
CREATE TRIGGER audit_logs_append_only
BEFORE UPDATE OR DELETE ON audit_logs
FOR EACH ROW EXECUTE FUNCTION audit_logs_reject_mutation();
"""


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Create all tables, indexes and the audit trigger."""
    op.create_table(
        "staff_users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("email", sa.String(255), nullable=False, comment="Lowercase login email"),
        sa.Column("full_name", sa.String(200), nullable=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column(
            "role",
            sa.String(20),
            nullable=False,
            server_default="staff",
            comment="User role: admin, staff",
        ),
        sa.Column(
            "is_active",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("true"),
            comment="Active status - inactive users cannot authenticate",
        ),
        sa.Column(
            "last_login_at",
            sa.DateTime(timezone=True),
            nullable=True,
            comment="Last successful authentication timestamp",
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_staff_users_email", "staff_users", ["email"], unique=True)
    op.create_index("ix_staff_users_role", "staff_users", ["role"])
    op.create_index("ix_staff_users_created_at", "staff_users", ["created_at"])
    op.create_index("ix_staff_users_role_active", "staff_users", ["role", "is_active"])

    op.create_table(
        "doctors",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("specialization", sa.String(200), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("experience", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("image_path", sa.String(500), nullable=True),
        sa.Column(
            "deleted_at",
            sa.DateTime(timezone=True),
            nullable=True,
            comment="Soft delete timestamp; NULL for active rows",
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("experience >= 0", name="ck_doctors_experience_non_negative"),
    )
    op.create_index("ix_doctors_name", "doctors", ["name"])
    op.create_index("ix_doctors_deleted_at", "doctors", ["deleted_at"])
    op.create_index("ix_doctors_created_at", "doctors", ["created_at"])

    op.create_table(
        "patients",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("age", sa.Integer(), nullable=False),
        sa.Column("gender", sa.String(10), nullable=True),
        sa.Column("contact", sa.String(100), nullable=True),
        sa.Column("diagnosis", sa.Text(), nullable=True),
        sa.Column(
            "assigned_doctor_id",
            sa.String(36),
            sa.ForeignKey("doctors.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("report_image_url", sa.Text(), nullable=True),
        sa.Column("report_image_path", sa.String(500), nullable=True),
        sa.Column(
            "deleted_at",
            sa.DateTime(timezone=True),
            nullable=True,
            comment="Soft delete timestamp; NULL for active rows",
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("age > 0", name="ck_patients_age_positive"),
    )
    op.create_index("ix_patients_name", "patients", ["name"])
    op.create_index("ix_patients_assigned_doctor_id", "patients", ["assigned_doctor_id"])
    op.create_index("ix_patients_deleted_at", "patients", ["deleted_at"])
    op.create_index("ix_patients_created_at", "patients", ["created_at"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("action", sa.String(20), nullable=False),
        sa.Column("table_name", sa.String(50), nullable=False),
        sa.Column("record_id", sa.String(36), nullable=False),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("staff_users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])
    op.create_index("ix_audit_logs_table_record", "audit_logs", ["table_name", "record_id"])

    if op.get_bind().dialect.name == "postgresql":
        op.execute(_APPEND_ONLY_FUNCTION)
        op.execute(_APPEND_ONLY_TRIGGER)


def downgrade() -> None:
    """Drop everything created by upgrade()."""
    if op.get_bind().dialect.name == "postgresql":
        op.execute("DROP TRIGGER IF EXISTS audit_logs_append_only ON audit_logs")
        op.execute("DROP FUNCTION IF EXISTS audit_logs_reject_mutation()")

    op.drop_index("ix_audit_logs_table_record", table_name="audit_logs")
    op.drop_index("ix_audit_logs_created_at", table_name="audit_logs")
    op.drop_index("ix_audit_logs_user_id", table_name="audit_logs")
    op.drop_index("ix_audit_logs_action", table_name="audit_logs")
    op.drop_table("audit_logs")

    op.drop_index("ix_patients_created_at", table_name="patients")
    op.drop_index("ix_patients_deleted_at", table_name="patients")
    op.drop_index("ix_patients_assigned_doctor_id", table_name="patients")
    op.drop_index("ix_patients_name", table_name="patients")
    op.drop_table("patients")

    op.drop_index("ix_doctors_created_at", table_name="doctors")
    op.drop_index("ix_doctors_deleted_at", table_name="doctors")
    op.drop_index("ix_doctors_name", table_name="doctors")
    op.drop_table("doctors")

    op.drop_index("ix_staff_users_role_active", table_name="staff_users")
    op.drop_index("ix_staff_users_created_at", table_name="staff_users")
    op.drop_index("ix_staff_users_role", table_name="staff_users")
    op.drop_index("ix_staff_users_email", table_name="staff_users")
    op.drop_table("staff_users")
