"""
Initial e-filing and work-request schema.

Revision ID: a1c0e5f1d001
Revises:
Create Date: 2026-10-19
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "a1c0e5f1d001"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column("id", sa.String(length=36), primary_key=True)


def _user_fk(name: str, *, nullable: bool = True, ondelete: str = "SET NULL", index: bool = False) -> sa.Column:
    return sa.Column(
        name,
        sa.String(length=36),
        sa.ForeignKey("users.id", ondelete=ondelete),
        nullable=nullable,
        index=index,
    )


def _file_fk(*, index: bool = True) -> sa.Column:
    return sa.Column(
        "file_id",
        sa.String(length=36),
        sa.ForeignKey("efiling_files.id", ondelete="CASCADE"),
        nullable=False,
        index=index,
    )


def _ts(name: str, *, nullable: bool = False, index: bool = False) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable, index=index)


def upgrade() -> None:
    # -- accounts ----------------------------------------------------------
    op.create_table(
        "efiling_roles",
        _id(),
        sa.Column("code", sa.String(length=64), nullable=False, unique=True, index=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true(), index=True),
    )
    op.create_table(
        "efiling_departments",
        _id(),
        sa.Column("code", sa.String(length=32), nullable=False, unique=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true(), index=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="100"),
    )
    op.create_table(
        "users",
        _id(),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True, index=True),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("designation", sa.String(length=255), nullable=True),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("totp_secret", sa.String(length=64), nullable=True),
        sa.Column(
            "role_id",
            sa.String(length=36),
            sa.ForeignKey("efiling_roles.id", ondelete="SET NULL"),
            nullable=True,
            index=True,
        ),
        sa.Column(
            "department_id",
            sa.String(length=36),
            sa.ForeignKey("efiling_departments.id", ondelete="SET NULL"),
            nullable=True,
            index=True,
        ),
        sa.Column("town_id", sa.Integer(), nullable=True, index=True),
        sa.Column("division_id", sa.Integer(), nullable=True, index=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true(), index=True),
        sa.Column("is_superuser", sa.Boolean(), nullable=False, server_default=sa.false()),
        _ts("last_login_at", nullable=True),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index("idx_users_role_active", "users", ["role_id", "is_active"])
    op.create_table(
        "efiling_user_teams",
        _id(),
        _user_fk("manager_id", nullable=False, ondelete="CASCADE", index=True),
        _user_fk("team_member_id", nullable=False, ondelete="CASCADE", index=True),
        sa.Column("team_role", sa.String(length=32), nullable=False, server_default="ASSISTANT"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true(), index=True),
        _ts("created_at"),
        sa.UniqueConstraint("manager_id", "team_member_id", name="uq_efiling_team_member"),
    )

    # -- reference data ----------------------------------------------------
    op.create_table(
        "town",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("town", sa.String(length=128), nullable=False, unique=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_table(
        "subtown",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("town_id", sa.Integer(), sa.ForeignKey("town.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("subtown", sa.String(length=128), nullable=False),
    )
    op.create_table(
        "divisions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=255), nullable=False, unique=True),
        sa.Column("code", sa.String(length=32), nullable=True, unique=True),
        sa.Column("ce_type", sa.String(length=64), nullable=True),
        sa.Column(
            "department_id",
            sa.String(length=36),
            sa.ForeignKey("efiling_departments.id", ondelete="SET NULL"),
            nullable=True,
            index=True,
        ),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true(), index=True),
        _ts("created_at"),
    )
    op.create_table(
        "complaint_types",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("type_name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("division_id", sa.Integer(), sa.ForeignKey("divisions.id", ondelete="SET NULL"), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_table(
        "complaint_subtypes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "complaint_type_id",
            sa.Integer(),
            sa.ForeignKey("complaint_types.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("subtype_name", sa.String(length=255), nullable=False),
    )
    op.create_table(
        "agents",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True, unique=True),
        sa.Column("contact_number", sa.String(length=32), nullable=True),
        sa.Column("designation", sa.String(length=128), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("role", sa.SmallInteger(), nullable=False, server_default="1", index=True),
        sa.Column("town_id", sa.Integer(), sa.ForeignKey("town.id", ondelete="SET NULL"), nullable=True, index=True),
        sa.Column(
            "division_id", sa.Integer(), sa.ForeignKey("divisions.id", ondelete="SET NULL"), nullable=True, index=True
        ),
        sa.Column(
            "complaint_type_id",
            sa.Integer(),
            sa.ForeignKey("complaint_types.id", ondelete="SET NULL"),
            nullable=True,
            index=True,
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _ts("created_at"),
    )
    op.create_table(
        "socialmediaperson",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True, unique=True),
        sa.Column("contact_number", sa.String(length=32), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _ts("created_at"),
    )

    # -- work requests -----------------------------------------------------
    op.create_table(
        "work_requests",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("complaint_type_id", sa.Integer(), sa.ForeignKey("complaint_types.id"), nullable=False, index=True),
        sa.Column("complaint_subtype_id", sa.Integer(), sa.ForeignKey("complaint_subtypes.id"), nullable=True),
        sa.Column("town_id", sa.Integer(), sa.ForeignKey("town.id"), nullable=True, index=True),
        sa.Column("subtown_id", sa.Integer(), sa.ForeignKey("subtown.id"), nullable=True),
        sa.Column("division_id", sa.Integer(), sa.ForeignKey("divisions.id"), nullable=True, index=True),
        sa.Column("contact_number", sa.String(length=32), nullable=False),
        sa.Column("address", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("nature_of_work", sa.String(length=255), nullable=True),
        sa.Column("file_type", sa.String(length=8), nullable=True),
        sa.Column("budget_code", sa.String(length=64), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("executive_engineer_id", sa.Integer(), sa.ForeignKey("agents.id"), nullable=True, index=True),
        sa.Column("contractor_id", sa.Integer(), sa.ForeignKey("agents.id"), nullable=True, index=True),
        sa.Column("creator_id", sa.String(length=64), nullable=False, index=True),
        sa.Column("creator_type", sa.String(length=16), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="Pending", index=True),
        _ts("created_at", index=True),
        _ts("updated_at"),
    )
    op.create_table(
        "work_request_subtowns",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "work_request_id",
            sa.Integer(),
            sa.ForeignKey("work_requests.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("subtown_id", sa.Integer(), sa.ForeignKey("subtown.id"), nullable=False),
    )
    op.create_table(
        "work_request_sm_agents",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "work_request_id",
            sa.Integer(),
            sa.ForeignKey("work_requests.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("socialmedia_agent_id", sa.Integer(), sa.ForeignKey("socialmediaperson.id"), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="pending"),
    )
    op.create_table(
        "work_request_locations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "work_request_id",
            sa.Integer(),
            sa.ForeignKey("work_requests.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
    )

    # -- files -------------------------------------------------------------
    op.create_table(
        "efiling_file_categories",
        _id(),
        sa.Column("code", sa.String(length=32), nullable=False, unique=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column(
            "department_id",
            sa.String(length=36),
            sa.ForeignKey("efiling_departments.id", ondelete="SET NULL"),
            nullable=True,
            index=True,
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_table(
        "efiling_file_number_sequences",
        _id(),
        sa.Column("prefix", sa.String(length=64), nullable=False, unique=True),
        sa.Column("last_value", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_table(
        "efiling_templates",
        _id(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("template_type", sa.String(length=64), nullable=False, server_default="note"),
        sa.Column("title", sa.String(length=255), nullable=True),
        sa.Column("subject", sa.String(length=500), nullable=True),
        sa.Column("main_content", sa.Text(), nullable=True),
        sa.Column(
            "category_id",
            sa.String(length=36),
            sa.ForeignKey("efiling_file_categories.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "department_id",
            sa.String(length=36),
            sa.ForeignKey("efiling_departments.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("role_id", sa.String(length=36), sa.ForeignKey("efiling_roles.id", ondelete="SET NULL"), nullable=True),
        sa.Column("is_system_template", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("usage_count", sa.Integer(), nullable=False, server_default="0"),
        _ts("last_used_at", nullable=True),
        _user_fk("created_by"),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index(
        "ix_efiling_templates_scope", "efiling_templates", ["department_id", "role_id", "is_active"]
    )
    op.create_table(
        "efiling_files",
        _id(),
        sa.Column("file_number", sa.String(length=64), nullable=False, unique=True, index=True),
        sa.Column("subject", sa.String(length=500), nullable=False),
        sa.Column(
            "department_id",
            sa.String(length=36),
            sa.ForeignKey("efiling_departments.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "category_id",
            sa.String(length=36),
            sa.ForeignKey("efiling_file_categories.id", ondelete="SET NULL"),
            nullable=True,
            index=True,
        ),
        sa.Column("priority", sa.String(length=16), nullable=False, server_default="high"),
        sa.Column("confidentiality_level", sa.String(length=16), nullable=False, server_default="normal"),
        sa.Column(
            "status",
            sa.Enum("DRAFT", "IN_PROGRESS", "COMPLETED", name="efiling_file_status_enum", native_enum=False),
            nullable=False,
            server_default="DRAFT",
            index=True,
        ),
        sa.Column("remarks", sa.Text(), nullable=True),
        _user_fk("created_by", nullable=False, ondelete="RESTRICT"),
        _user_fk("assigned_to"),
        sa.Column(
            "work_request_id",
            sa.Integer(),
            sa.ForeignKey("work_requests.id", ondelete="SET NULL"),
            nullable=True,
            index=True,
        ),
        _ts("sla_deadline", nullable=True),
        sa.Column(
            "sla_status",
            sa.Enum("ACTIVE", "PAUSED", "BREACHED", "COMPLETED", name="efiling_sla_status_enum", native_enum=False),
            nullable=True,
        ),
        sa.Column("sla_paused", sa.Boolean(), nullable=False, server_default=sa.false()),
        _ts("sla_paused_at", nullable=True),
        sa.Column("sla_accumulated_hours", sa.Float(), nullable=False, server_default="0"),
        sa.Column("sla_pause_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("page_count", sa.Integer(), nullable=False, server_default="0"),
        _ts("created_at"),
        _ts("updated_at"),
        _ts("completed_at", nullable=True),
    )
    op.create_index("ix_efiling_files_assigned_status", "efiling_files", ["assigned_to", "status"])
    op.create_index("ix_efiling_files_creator_created", "efiling_files", ["created_by", "created_at"])
    op.create_index("ix_efiling_files_department_created", "efiling_files", ["department_id", "created_at"])

    op.create_table(
        "efiling_file_workflow_states",
        _id(),
        sa.Column(
            "file_id",
            sa.String(length=36),
            sa.ForeignKey("efiling_files.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        _user_fk("creator_id"),
        _user_fk("current_assigned_to"),
        sa.Column(
            "current_state",
            sa.Enum(
                "TEAM_INTERNAL",
                "EXTERNAL",
                "RETURNED_TO_CREATOR",
                name="efiling_workflow_state_enum",
                native_enum=False,
            ),
            nullable=False,
            server_default="TEAM_INTERNAL",
        ),
        sa.Column("is_within_team", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("tat_started", sa.Boolean(), nullable=False, server_default=sa.false()),
        _ts("tat_started_at", nullable=True),
        _ts("last_external_mark_at", nullable=True),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_table(
        "efiling_file_movements",
        _id(),
        _file_fk(),
        _user_fk("from_user_id"),
        _user_fk("to_user_id"),
        sa.Column("from_department_id", sa.String(length=36), nullable=True),
        sa.Column("to_department_id", sa.String(length=36), nullable=True),
        sa.Column(
            "action_type",
            sa.Enum("MARKED", "RETURNED", "COMPLETED", name="efiling_movement_action_enum", native_enum=False),
            nullable=False,
            server_default="MARKED",
        ),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.Column("is_return_to_creator", sa.Boolean(), nullable=False, server_default=sa.false()),
        _ts("created_at"),
    )
    op.create_index(
        "ix_efiling_file_movements_file_created", "efiling_file_movements", ["file_id", "created_at"]
    )
    op.create_index("ix_efiling_file_movements_to_user", "efiling_file_movements", ["to_user_id"])

    op.create_table(
        "efiling_sla_matrix",
        _id(),
        sa.Column("from_role_code", sa.String(length=64), nullable=False, server_default="*"),
        sa.Column("to_role_code", sa.String(length=64), nullable=False, server_default="*"),
        sa.Column("sla_hours", sa.Integer(), nullable=False, server_default="24"),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="100"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true(), index=True),
    )
    op.create_table(
        "efiling_sla_pause_history",
        _id(),
        _file_fk(),
        _ts("paused_at"),
        _ts("resumed_at", nullable=True),
        sa.Column("pause_reason", sa.String(length=64), nullable=False, server_default="MANUAL_PAUSE"),
        _user_fk("paused_by_user_id"),
        sa.Column("duration_hours", sa.Float(), nullable=True),
    )

    # -- document ----------------------------------------------------------
    op.create_table(
        "efiling_document_pages",
        _id(),
        _file_fk(),
        sa.Column("page_number", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=True),
        sa.Column("content", sa.JSON(), nullable=False),
        sa.Column(
            "page_type",
            sa.Enum("MAIN", "ATTACHMENT", name="efiling_page_type_enum", native_enum=False),
            nullable=False,
            server_default="MAIN",
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true(), index=True),
        _user_fk("created_by"),
        _ts("created_at"),
        _ts("updated_at"),
        sa.UniqueConstraint("file_id", "page_number", name="uq_efiling_page_number"),
    )
    op.create_table(
        "efiling_page_additions",
        _id(),
        _file_fk(),
        sa.Column(
            "page_id",
            sa.String(length=36),
            sa.ForeignKey("efiling_document_pages.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _user_fk("added_by"),
        sa.Column("role_code", sa.String(length=64), nullable=True),
        sa.Column("addition_type", sa.String(length=32), nullable=False),
        _ts("created_at"),
    )
    op.create_table(
        "efiling_documents",
        _id(),
        sa.Column(
            "file_id",
            sa.String(length=36),
            sa.ForeignKey("efiling_files.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("content", sa.JSON(), nullable=False),
        sa.Column(
            "template_id",
            sa.String(length=36),
            sa.ForeignKey("efiling_templates.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        _user_fk("updated_by"),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_table(
        "efiling_comments",
        _id(),
        _file_fk(index=False),
        _user_fk("user_id"),
        sa.Column("user_name", sa.String(length=255), nullable=False),
        sa.Column("user_role", sa.String(length=64), nullable=True),
        sa.Column("text", sa.Text(), nullable=False),
        _ts("timestamp"),
        sa.Column("edited", sa.Boolean(), nullable=False, server_default=sa.false()),
        _ts("edited_at", nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index("ix_efiling_comments_file_time", "efiling_comments", ["file_id", "timestamp"])
    op.create_table(
        "efiling_attachments",
        _id(),
        _file_fk(index=False),
        sa.Column("file_name", sa.String(length=255), nullable=False),
        sa.Column("stored_name", sa.String(length=255), nullable=False),
        sa.Column("file_url", sa.String(length=512), nullable=False),
        sa.Column("file_type", sa.String(length=128), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        _user_fk("uploaded_by"),
        _ts("uploaded_at"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index(
        "ix_efiling_attachments_file_uploaded", "efiling_attachments", ["file_id", "uploaded_at"]
    )

    # -- signatures --------------------------------------------------------
    op.create_table(
        "efiling_signatures",
        _id(),
        _file_fk(),
        _user_fk("user_id"),
        sa.Column("user_name", sa.String(length=255), nullable=False),
        sa.Column("user_role", sa.String(length=64), nullable=True),
        sa.Column(
            "type",
            sa.Enum("TEXT", "IMAGE", name="efiling_signature_kind_enum", native_enum=False),
            nullable=False,
        ),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("font", sa.String(length=64), nullable=True),
        sa.Column("color", sa.String(length=32), nullable=True),
        sa.Column("position", sa.JSON(), nullable=True),
        sa.Column("verification_method", sa.String(length=32), nullable=True),
        sa.Column("verification_jti", sa.String(length=64), nullable=True, unique=True),
        _ts("timestamp"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index(
        "ix_efiling_signatures_file_user_active", "efiling_signatures", ["file_id", "user_id", "is_active"]
    )
    op.create_table(
        "efiling_user_signatures",
        _id(),
        _user_fk("user_id", nullable=False, ondelete="CASCADE", index=True),
        sa.Column("signature_name", sa.String(length=128), nullable=False),
        sa.Column(
            "signature_type",
            sa.Enum("TYPED", "DRAWN", "SCANNED", name="efiling_signature_template_kind_enum", native_enum=False),
            nullable=False,
        ),
        sa.Column("signature_data", sa.Text(), nullable=True),
        sa.Column("file_url", sa.String(length=512), nullable=True),
        sa.Column("font", sa.String(length=64), nullable=True),
        sa.Column("color", sa.String(length=32), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.false()),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_table(
        "efiling_signature_stages",
        _id(),
        _file_fk(),
        _user_fk("user_id", nullable=False, ondelete="CASCADE", index=True),
        sa.Column("payload", sa.JSON(), nullable=False),
        _ts("expires_at"),
        _ts("committed_at", nullable=True),
        sa.Column("verification_jti", sa.String(length=64), nullable=True),
        _ts("created_at"),
    )
    op.create_table(
        "efiling_verification_codes",
        _id(),
        _user_fk("user_id", nullable=False, ondelete="CASCADE"),
        sa.Column(
            "method",
            sa.Enum(
                "SMS",
                "EMAIL",
                "AUTHENTICATOR",
                "GOOGLE",
                name="efiling_verification_method_enum",
                native_enum=False,
            ),
            nullable=False,
        ),
        sa.Column("code_hash", sa.String(length=255), nullable=False),
        _ts("expires_at"),
        _ts("created_at"),
        sa.UniqueConstraint("user_id", "method", name="uq_efiling_verification_user_method"),
    )

    # -- notifications & audit ---------------------------------------------
    op.create_table(
        "efiling_notifications",
        _id(),
        _user_fk("user_id", nullable=False, ondelete="CASCADE", index=True),
        sa.Column(
            "file_id",
            sa.String(length=36),
            sa.ForeignKey("efiling_files.id", ondelete="CASCADE"),
            nullable=True,
            index=True,
        ),
        sa.Column("type", sa.String(length=64), nullable=False, index=True),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("priority", sa.String(length=16), nullable=False, server_default="normal"),
        sa.Column("action_required", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        _ts("read_at", nullable=True),
        _ts("created_at", index=True),
    )
    op.create_index("ix_efiling_notifications_user_read", "efiling_notifications", ["user_id", "is_read"])
    op.create_index(
        "ix_efiling_notifications_user_created", "efiling_notifications", ["user_id", "created_at"]
    )
    op.create_table(
        "efiling_delivery_logs",
        _id(),
        _ts("created_at", index=True),
        _ts("sent_at", nullable=True),
        sa.Column(
            "channel",
            sa.Enum("EMAIL", "SMS", name="delivery_channel_enum", native_enum=False),
            nullable=False,
        ),
        sa.Column("recipient", sa.String(length=255), nullable=False),
        sa.Column("subject", sa.String(length=255), nullable=False),
        sa.Column("template_key", sa.String(length=128), nullable=False, index=True),
        sa.Column(
            "status",
            sa.Enum("QUEUED", "SENT", "FAILED", "SKIPPED_NO_PROVIDER", name="delivery_status_enum", native_enum=False),
            nullable=False,
            index=True,
        ),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("context_json", sa.JSON(), nullable=True),
        sa.Column("correlation_id", sa.String(length=64), nullable=True, index=True),
    )
    op.create_index("ix_efiling_delivery_logs_status_created", "efiling_delivery_logs", ["status", "created_at"])
    op.create_index("ix_efiling_delivery_logs_recipient", "efiling_delivery_logs", ["recipient"])
    op.create_table(
        "audit_events",
        _id(),
        sa.Column("entity_type", sa.String(length=64), nullable=False),
        sa.Column("entity_id", sa.String(length=64), nullable=False),
        sa.Column("action", sa.String(length=64), nullable=False),
        _user_fk("actor_user_id", index=True),
        _ts("occurred_at"),
        sa.Column("before", sa.JSON(), nullable=True),
        sa.Column("after", sa.JSON(), nullable=True),
        sa.Column("correlation_id", sa.String(length=64), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
    )
    op.create_index("ix_audit_events_entity", "audit_events", ["entity_type", "entity_id"])
    op.create_index("ix_audit_events_action_time", "audit_events", ["action", "occurred_at"])
    op.create_index("ix_audit_events_time_desc", "audit_events", [sa.text("occurred_at DESC")])


def downgrade() -> None:
    for table in (
        "audit_events",
        "efiling_delivery_logs",
        "efiling_notifications",
        "efiling_verification_codes",
        "efiling_signature_stages",
        "efiling_user_signatures",
        "efiling_signatures",
        "efiling_attachments",
        "efiling_comments",
        "efiling_documents",
        "efiling_page_additions",
        "efiling_document_pages",
        "efiling_sla_pause_history",
        "efiling_sla_matrix",
        "efiling_file_movements",
        "efiling_file_workflow_states",
        "efiling_files",
        "efiling_templates",
        "efiling_file_number_sequences",
        "efiling_file_categories",
        "work_request_locations",
        "work_request_sm_agents",
        "work_request_subtowns",
        "work_requests",
        "socialmediaperson",
        "agents",
        "complaint_subtypes",
        "complaint_types",
        "divisions",
        "subtown",
        "town",
        "efiling_user_teams",
        "users",
        "efiling_departments",
        "efiling_roles",
    ):
        op.drop_table(table)
