"""
ProjectHub
Notification Service.

Creates, fans out and queries in-app notifications.  Delivery (push, email,
streaming) is handled elsewhere; this service only writes the rows.

Fan-out helpers used inside a larger unit of work take ``commit=False`` so the
notifications commit (or roll back) together with the state change that
caused them.
"""

from datetime import datetime, timezone

from projecthub.models import db
from projecthub.models.auth import ProjectMember
from projecthub.models.notification import NOTIFICATION_TYPES, Notification


class NotificationService:
    """Stateless service class for notification operations."""

    # ── Create ────────────────────────────────────────────────────────────

    @staticmethod
    def create(*, user_id, title, message="", type="SYSTEM", link=None,
               metadata=None, commit=True):
        """Create a single notification for one user."""
        return NotificationService.broadcast(
            user_ids=[user_id], title=title, message=message, type=type,
            link=link, metadata=metadata, commit=commit,
        )[0]

    @staticmethod
    def broadcast(*, user_ids, title, message="", type="SYSTEM", link=None,
                  metadata=None, commit=True):
        """
        Create one notification per recipient.

        Duplicate ids are collapsed; order of first appearance is kept.

        Returns:
            List of created Notification instances.
        """
        if type not in NOTIFICATION_TYPES:
            raise ValueError(f"Unknown notification type {type!r}")
        notifications = []
        for uid in dict.fromkeys(user_ids):
            notif = Notification(
                user_id=uid,
                type=type,
                title=title,
                message=message,
                link=link,
                meta=dict(metadata or {}),
            )
            db.session.add(notif)
            notifications.append(notif)
        if commit:
            db.session.commit()
        return notifications

    @staticmethod
    def notify_project_members(project_id, *, title, message="", type="SYSTEM",
                               link=None, metadata=None, commit=False):
        """Fan out to every active member of the project."""
        member_ids = [
            row.user_id
            for row in (
                ProjectMember.query
                .filter_by(project_id=project_id, is_active=True)
                .order_by(ProjectMember.id)
                .all()
            )
        ]
        return NotificationService.broadcast(
            user_ids=member_ids, title=title, message=message, type=type,
            link=link, metadata=metadata, commit=commit,
        )

    # ── Query ─────────────────────────────────────────────────────────────

    @staticmethod
    def list_for_user(user_id, unread_only=False, limit=50, offset=0):
        """Retrieve a user's notifications, newest first."""
        q = Notification.query.filter_by(user_id=user_id)
        if unread_only:
            q = q.filter_by(is_read=False)
        total = q.count()
        items = (
            q.order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset(offset).limit(limit).all()
        )
        return items, total

    @staticmethod
    def unread_count(user_id):
        return Notification.query.filter_by(user_id=user_id, is_read=False).count()

    # ── Actions ───────────────────────────────────────────────────────────

    @staticmethod
    def mark_read(notification_id, user_id):
        """Mark one of the user's notifications as read; None if it is not theirs."""
        notif = Notification.query.filter_by(id=notification_id, user_id=user_id).first()
        if notif and not notif.is_read:
            notif.mark_read()
            db.session.commit()
        return notif

    @staticmethod
    def mark_all_read(user_id):
        now = datetime.now(timezone.utc)
        count = (
            Notification.query
            .filter_by(user_id=user_id, is_read=False)
            .update({"is_read": True, "read_at": now}, synchronize_session="fetch")
        )
        db.session.commit()
        return count
