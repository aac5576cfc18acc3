"""
Settings Service: platform-wide system settings.

Writes go to ``system_settings``, the authoritative store behind the
maintenance gate.  After a successful commit the gate cache is invalidated so
the new value applies to the next request.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError

from projecthub.core.exceptions import ValidationError
from projecthub.models import db
from projecthub.models.settings import SETTING_KEYS, SystemSetting
from projecthub.services.audit_service import record_audit
from projecthub.services.maintenance import invalidate_maintenance_cache

logger = logging.getLogger(__name__)

MESSAGE_MAX = 500


def _validate(data) -> dict:
    if not isinstance(data, dict) or not data:
        raise ValidationError("Request body must be a non-empty JSON object")
    errors = {}
    for key in data:
        if key not in SETTING_KEYS:
            errors[key] = "unknown setting"
    if "maintenance_mode" in data and not isinstance(data["maintenance_mode"], bool):
        errors["maintenance_mode"] = "must be a boolean"
    if "maintenance_message" in data:
        msg = data["maintenance_message"]
        if msg is not None and (not isinstance(msg, str) or len(msg) > MESSAGE_MAX):
            errors["maintenance_message"] = f"must be a string of at most {MESSAGE_MAX} characters"
    if errors:
        raise ValidationError("Invalid settings", details=errors)
    return dict(data)


def get_settings() -> dict:
    return {row.key: row.value for row in SystemSetting.query.order_by(SystemSetting.key).all()}


def get_setting(key: str, default=None):
    row = SystemSetting.query.filter_by(key=key).first()
    return row.value if row is not None else default


def update_settings(principal, data):
    values = _validate(data)
    try:
        for key, value in values.items():
            row = SystemSetting.query.filter_by(key=key).first()
            if row is None:
                row = SystemSetting(key=key)
                db.session.add(row)
            row.value = value
            row.updated_by_id = principal.id
        record_audit(
            action="SETTINGS_UPDATE", actor_id=principal.id, target_type="SETTINGS",
            target_id="system", metadata={"updatedKeys": sorted(values), "values": values},
        )
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    if "maintenance_mode" in values:
        invalidate_maintenance_cache()
        logger.warning("Maintenance mode set to %s", values["maintenance_mode"],
                       extra={"actor_id": principal.id})
    return get_settings(), None
