"""
Auth Models: users and project memberships.

The identity provider owns credentials and sessions; these tables only carry
what the authorization core needs: the global role of each user and the
per-project membership rows (with optional custom permission overrides).
"""

from datetime import datetime, timezone

from projecthub.models import db


# ── Constants ────────────────────────────────────────────────────────────────

SUPER_ADMIN = "SUPER_ADMIN"
ADMIN = "ADMIN"
COLLABORATOR = "COLLABORATOR"
CLIENT = "CLIENT"

GLOBAL_ROLES = (SUPER_ADMIN, ADMIN, COLLABORATOR, CLIENT)

MEMBER_ROLES = {"MANAGER", "MEMBER", "VIEWER"}


# ═══════════════════════════════════════════════════════════════
# 1. USERS
# ═══════════════════════════════════════════════════════════════
class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(200), unique=True, nullable=False)
    full_name = db.Column(db.String(200))
    role = db.Column(
        db.String(20), nullable=False, default=COLLABORATOR,
        comment="SUPER_ADMIN | ADMIN | COLLABORATOR | CLIENT",
    )
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.Index("ix_users_role", "role"),
    )

    # Relationships
    project_memberships = db.relationship(
        "ProjectMember", back_populates="user", lazy="dynamic",
        cascade="all, delete-orphan", foreign_keys="ProjectMember.user_id",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "role": self.role,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<User {self.id}: {self.email} ({self.role})>"


# ═══════════════════════════════════════════════════════════════
# 2. PROJECT_MEMBERS (User ↔ Project assignment)
# ═══════════════════════════════════════════════════════════════
class ProjectMember(db.Model):
    __tablename__ = "project_members"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    member_role = db.Column(db.String(20), nullable=False, default="MEMBER")
    custom_permissions = db.Column(
        db.JSON, default=dict,
        comment="{permission: bool} overrides, e.g. {'cost:manage': true}",
    )
    # Removal deactivates the row; it is never hard-deleted.
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    joined_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.UniqueConstraint("project_id", "user_id", name="uq_project_member"),
        db.Index("ix_project_members_project", "project_id"),
        db.Index("ix_project_members_user", "user_id"),
    )

    # Relationships
    user = db.relationship("User", back_populates="project_memberships", foreign_keys=[user_id])
    project = db.relationship("Project", back_populates="members")

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "user_id": self.user_id,
            "member_role": self.member_role,
            "custom_permissions": self.custom_permissions or {},
            "is_active": self.is_active,
            "joined_at": self.joined_at.isoformat() if self.joined_at else None,
            "user": self.user.to_dict() if self.user else None,
        }
