"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "organizations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("name"),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("organization_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("full_name", sa.String(length=200), nullable=False, server_default=""),
        sa.Column(
            "role",
            sa.Enum(
                "dentist",
                "hygienist",
                "assistant",
                "reception",
                "superadmin",
                name="role_enum",
            ),
            nullable=False,
            server_default="reception",
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("must_change_password", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("email"),
    )
    op.create_index("ix_users_email", "users", ["email"])
    op.create_index("ix_users_organization_id", "users", ["organization_id"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("organization_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=True),
        sa.Column("actor_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("actor_email", sa.String(length=320), nullable=True),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("entity_type", sa.String(length=50), nullable=False),
        sa.Column("entity_id", sa.String(length=64), nullable=False),
        sa.Column("request_id", sa.String(length=120), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("before_json", sa.JSON(), nullable=True),
        sa.Column("after_json", sa.JSON(), nullable=True),
    )
    op.create_index("ix_audit_logs_organization_id", "audit_logs", ["organization_id"])

    op.create_table(
        "patients",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("organization_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("patient_code", sa.String(length=32), nullable=True),
        sa.Column("first_name", sa.String(length=120), nullable=False),
        sa.Column("last_name", sa.String(length=120), nullable=False),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("phone", sa.String(length=50), nullable=True),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("is_long_term_care", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("dental_chart", sa.JSON(), nullable=True),
        sa.Column("periodontal_charts", sa.JSON(), nullable=True),
        *_timestamps(),
        sa.Column("created_by_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("updated_by_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_by_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
    )
    op.create_index("ix_patients_organization_id", "patients", ["organization_id"])
    op.create_index("ix_patients_patient_code", "patients", ["patient_code"])
    op.create_index("ix_patients_deleted_at", "patients", ["deleted_at"])

    op.create_table(
        "dental_codes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("code", sa.String(length=32), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("category", sa.String(length=32), nullable=False),
        sa.Column("section", sa.String(length=120), nullable=True),
        sa.Column("points", sa.Float(), nullable=True),
        sa.Column("rate_cents", sa.Integer(), nullable=True),
        sa.Column("requires_tooth", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("requires_surface", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("requires_jaw", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_per_element", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("requirements", sa.JSON(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_dental_codes_code", "dental_codes", ["code"], unique=True)
    op.create_index("ix_dental_codes_category", "dental_codes", ["category"])

    op.create_table(
        "dental_procedures",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("organization_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("patient_id", sa.Integer(), sa.ForeignKey("patients.id"), nullable=False),
        sa.Column("code_id", sa.Integer(), sa.ForeignKey("dental_codes.id"), nullable=False),
        sa.Column("tooth_number", sa.Integer(), nullable=True),
        sa.Column("surface", sa.String(length=32), nullable=True),
        sa.Column("sub_surfaces", sa.JSON(), nullable=False),
        sa.Column("material", sa.String(length=32), nullable=True),
        sa.Column("bridge_teeth", sa.JSON(), nullable=True),
        sa.Column(
            "status",
            sa.Enum("PENDING", "IN_PROGRESS", "COMPLETED", "CANCELLED", name="dental_procedure_status"),
            nullable=False,
            server_default="PENDING",
        ),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("cost_cents", sa.Integer(), nullable=True),
        sa.Column("is_paid", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("payment_amount_cents", sa.Integer(), nullable=True),
        sa.Column(
            "payment_method",
            sa.Enum("CASH", "CARD", "TRANSFER", name="payment_method_enum"),
            nullable=True,
        ),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("practitioner_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("disables_tooth", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_index("ix_dental_procedures_organization_id", "dental_procedures", ["organization_id"])
    op.create_index("ix_dental_procedures_patient_id", "dental_procedures", ["patient_id"])
    op.create_index("ix_dental_procedures_code_id", "dental_procedures", ["code_id"])
    op.create_index("ix_dental_procedures_date", "dental_procedures", ["date"])
    op.create_index(
        "uq_dental_procedures_disabled_tooth",
        "dental_procedures",
        ["patient_id", "tooth_number", "code_id"],
        unique=True,
        postgresql_where=sa.text("disables_tooth"),
        sqlite_where=sa.text("disables_tooth = 1"),
    )

    op.create_table(
        "procedure_revisions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("organization_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("procedure_id", sa.Integer(), nullable=False),
        sa.Column("patient_id", sa.Integer(), sa.ForeignKey("patients.id"), nullable=False),
        sa.Column("actor_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column(
            "action",
            sa.Enum("create", "update", "delete", name="procedure_revision_action"),
            nullable=False,
        ),
        sa.Column("before_json", sa.JSON(), nullable=True),
        sa.Column("after_json", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("undone_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_procedure_revisions_organization_id", "procedure_revisions", ["organization_id"])
    op.create_index("ix_procedure_revisions_procedure_id", "procedure_revisions", ["procedure_id"])
    op.create_index("ix_procedure_revisions_patient_id", "procedure_revisions", ["patient_id"])
    op.create_index("ix_procedure_revisions_actor_user_id", "procedure_revisions", ["actor_user_id"])

    op.create_table(
        "clinic_schedules",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("organization_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("room_count", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_clinic_schedules_organization_id", "clinic_schedules", ["organization_id"])

    op.create_table(
        "schedule_overrides",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("schedule_id", sa.Integer(), sa.ForeignKey("clinic_schedules.id"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("room_number", sa.Integer(), nullable=True),
        sa.Column("practitioner_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("start_time", sa.Time(), nullable=True),
        sa.Column("end_time", sa.Time(), nullable=True),
        sa.Column("is_unavailable", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("reason", sa.String(length=255), nullable=True),
        sa.UniqueConstraint(
            "schedule_id",
            "date",
            "room_number",
            "practitioner_id",
            name="uq_schedule_overrides_slot",
        ),
    )
    op.create_index("ix_schedule_overrides_schedule_id", "schedule_overrides", ["schedule_id"])
    op.create_index("ix_schedule_overrides_date", "schedule_overrides", ["date"])


def downgrade() -> None:
    op.drop_table("schedule_overrides")
    op.drop_table("clinic_schedules")
    op.drop_table("procedure_revisions")
    op.drop_index("uq_dental_procedures_disabled_tooth", table_name="dental_procedures")
    op.drop_table("dental_procedures")
    op.drop_table("dental_codes")
    op.drop_table("patients")
    op.drop_table("audit_logs")
    op.drop_table("users")
    op.drop_table("organizations")
    for enum_name in (
        "procedure_revision_action",
        "payment_method_enum",
        "dental_procedure_status",
        "role_enum",
    ):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
