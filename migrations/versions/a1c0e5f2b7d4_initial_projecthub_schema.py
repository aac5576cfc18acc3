"""initial_projecthub_schema

Creates the ProjectHub core tables:
  - users, clients, projects, project_members
  - audit_logs            : append-only audit trail
  - notes, note_history   : versioned notes
  - cost_entries, proposals
  - gantt_items
  - notifications
  - system_settings       : authoritative maintenance flag

Tables are created conditionally so the revision also applies to databases
that already received them via db.create_all() in development.

Revision ID: a1c0e5f2b7d4
Revises:
Create Date: 2026-10-18 09:12:40.118204
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = 'a1c0e5f2b7d4'
down_revision = None
branch_labels = None
depends_on = None


def _ts(name, nullable=True):
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade():
    bind = op.get_bind()
    existing = set(sa_inspect(bind).get_table_names())

    # ── Identity & projects ───────────────────────────────────────────────
    if "users" not in existing:
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("email", sa.String(length=200), nullable=False),
            sa.Column("full_name", sa.String(length=200), nullable=True),
            sa.Column("role", sa.String(length=20), nullable=False,
                      comment="SUPER_ADMIN | ADMIN | COLLABORATOR | CLIENT"),
            sa.Column("is_active", sa.Boolean(), nullable=False),
            _ts("created_at"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("email"),
        )
        op.create_index("ix_users_role", "users", ["role"])

    if "clients" not in existing:
        op.create_table(
            "clients",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("email", sa.String(length=200), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False),
            _ts("created_at", nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )

    if "projects" not in existing:
        op.create_table(
            "projects",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("client_id", sa.Integer(), nullable=True),
            sa.Column("owner_id", sa.Integer(), nullable=True),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False,
                      comment="PLANNING | ACTIVE | ON_HOLD | COMPLETED | ARCHIVED"),
            sa.Column("is_public", sa.Boolean(), nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=False),
            _ts("created_at", nullable=False),
            _ts("updated_at", nullable=False),
            sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["owner_id"], ["users.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_projects_client_id", "projects", ["client_id"])
        op.create_index("ix_projects_owner_id", "projects", ["owner_id"])

    if "project_members" not in existing:
        op.create_table(
            "project_members",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("user_id", sa.Integer(), nullable=False),
            sa.Column("member_role", sa.String(length=20), nullable=False),
            sa.Column("custom_permissions", sa.JSON(), nullable=True,
                      comment="{permission: bool} overrides, e.g. {'cost:manage': true}"),
            sa.Column("is_active", sa.Boolean(), nullable=False),
            _ts("joined_at"),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("project_id", "user_id", name="uq_project_member"),
        )
        op.create_index("ix_project_members_project", "project_members", ["project_id"])
        op.create_index("ix_project_members_user", "project_members", ["user_id"])

    if "system_settings" not in existing:
        op.create_table(
            "system_settings",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("key", sa.String(length=100), nullable=False),
            sa.Column("value", sa.JSON(), nullable=True),
            sa.Column("updated_by_id", sa.Integer(), nullable=True),
            _ts("updated_at"),
            sa.ForeignKeyConstraint(["updated_by_id"], ["users.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("key"),
        )

    # ── Audit trail ───────────────────────────────────────────────────────
    if "audit_logs" not in existing:
        op.create_table(
            "audit_logs",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("actor_id", sa.Integer(), nullable=True,
                      comment="FK to users table (nullable for system entries)"),
            sa.Column("action", sa.String(length=60), nullable=False),
            sa.Column("target_type", sa.String(length=30), nullable=False),
            sa.Column("target_id", sa.String(length=36), nullable=False,
                      comment="PK of the referenced entity (int-as-string)"),
            sa.Column("project_id", sa.Integer(), nullable=True),
            sa.Column("metadata", sa.JSON(), nullable=False),
            _ts("created_at", nullable=False),
            sa.ForeignKeyConstraint(["actor_id"], ["users.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("idx_audit_target", "audit_logs", ["target_type", "target_id"])
        op.create_index("idx_audit_project", "audit_logs", ["project_id"])
        op.create_index("idx_audit_actor", "audit_logs", ["actor_id"])
        op.create_index("idx_audit_action", "audit_logs", ["action"])
        op.create_index("idx_audit_created", "audit_logs", ["created_at"])
        op.create_index("idx_audit_project_created", "audit_logs", ["project_id", "created_at"])

    # ── Notes ─────────────────────────────────────────────────────────────
    if "notes" not in existing:
        op.create_table(
            "notes",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("author_id", sa.Integer(), nullable=True),
            sa.Column("title", sa.String(length=300), nullable=False),
            sa.Column("content", sa.JSON(), nullable=False, comment="Rich-text document"),
            sa.Column("visibility", sa.String(length=20), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False),
            sa.Column("version", sa.Integer(), nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=False),
            _ts("created_at"),
            _ts("updated_at"),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["author_id"], ["users.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_notes_project_id", "notes", ["project_id"])

    if "note_history" not in existing:
        op.create_table(
            "note_history",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("note_id", sa.Integer(), nullable=False),
            sa.Column("version", sa.Integer(), nullable=False),
            sa.Column("title", sa.String(length=300), nullable=False),
            sa.Column("content", sa.JSON(), nullable=False),
            sa.Column("saved_by_id", sa.Integer(), nullable=True),
            _ts("created_at"),
            sa.ForeignKeyConstraint(["note_id"], ["notes.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["saved_by_id"], ["users.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("note_id", "version", name="uq_note_history_version"),
        )
        op.create_index("ix_note_history_note_id", "note_history", ["note_id"])

    # ── Workflow entities ─────────────────────────────────────────────────
    if "cost_entries" not in existing:
        op.create_table(
            "cost_entries",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("description", sa.String(length=300), nullable=False),
            sa.Column("amount", sa.Numeric(precision=14, scale=2), nullable=False),
            sa.Column("category", sa.String(length=20), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False),
            sa.Column("created_by_id", sa.Integer(), nullable=True),
            sa.Column("approved_by_id", sa.Integer(), nullable=True),
            _ts("approved_at"),
            _ts("paid_at"),
            sa.Column("is_active", sa.Boolean(), nullable=False),
            _ts("created_at"),
            _ts("updated_at"),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["created_by_id"], ["users.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["approved_by_id"], ["users.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_cost_entries_project_id", "cost_entries", ["project_id"])

    if "proposals" not in existing:
        op.create_table(
            "proposals",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("code", sa.String(length=30), nullable=False),
            sa.Column("title", sa.String(length=300), nullable=False),
            sa.Column("total_value", sa.Numeric(precision=14, scale=2), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False),
            sa.Column("created_by_id", sa.Integer(), nullable=True),
            sa.Column("approved_by_id", sa.Integer(), nullable=True),
            _ts("approved_at"),
            sa.Column("is_active", sa.Boolean(), nullable=False),
            _ts("created_at"),
            _ts("updated_at"),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["created_by_id"], ["users.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["approved_by_id"], ["users.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("project_id", "code", name="uq_proposal_project_code"),
        )
        op.create_index("ix_proposals_project_id", "proposals", ["project_id"])

    # ── Gantt ─────────────────────────────────────────────────────────────
    if "gantt_items" not in existing:
        op.create_table(
            "gantt_items",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("parent_id", sa.Integer(), nullable=True),
            sa.Column("title", sa.String(length=300), nullable=False),
            _ts("start_date", nullable=False),
            _ts("end_date", nullable=False),
            sa.Column("progress", sa.Integer(), nullable=False),
            sa.Column("order", sa.Integer(), nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=False),
            _ts("created_at"),
            _ts("updated_at"),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["parent_id"], ["gantt_items.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_gantt_items_project_id", "gantt_items", ["project_id"])

    # ── Notifications ─────────────────────────────────────────────────────
    if "notifications" not in existing:
        op.create_table(
            "notifications",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("user_id", sa.Integer(), nullable=False),
            sa.Column("type", sa.String(length=30), nullable=False),
            sa.Column("title", sa.String(length=300), nullable=False),
            sa.Column("message", sa.Text(), nullable=True),
            sa.Column("link", sa.String(length=500), nullable=True),
            sa.Column("metadata", sa.JSON(), nullable=True),
            sa.Column("is_read", sa.Boolean(), nullable=False),
            _ts("read_at"),
            _ts("created_at"),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
        op.create_index("ix_notifications_inbox", "notifications", ["user_id", "is_read"])


def downgrade():
    for table in (
        "notifications", "gantt_items", "proposals", "cost_entries",
        "note_history", "notes", "audit_logs", "system_settings",
        "project_members", "projects", "clients", "users",
    ):
        op.drop_table(table)
