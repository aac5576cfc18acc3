"""
Maintenance Gate: process-wide cached maintenance-mode flag.

The backing store (``system_settings.maintenance_mode``) stays authoritative;
the gate only avoids reading it on every request.  A value is reused for at
most ``ttl_seconds`` (60 by default) and ``invalidate()`` forces the next
``is_active()`` call to re-read.

If the authoritative read fails the previously cached value is kept (and the
read retried on the next call).  With nothing cached yet the gate reports
maintenance as active.

One gate lives in ``app.extensions["maintenance_gate"]``; tests may replace it.
"""

import logging
import threading
import time

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 60


class MaintenanceGate:
    """Cache of the maintenance flag with a bounded staleness window."""

    def __init__(self, loader, ttl_seconds: float = DEFAULT_TTL_SECONDS, clock=time.monotonic):
        self._loader = loader
        self._ttl = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._enabled: bool | None = None
        self._cached_at: float | None = None

    def is_active(self) -> bool:
        with self._lock:
            now = self._clock()
            if self._cached_at is not None and now - self._cached_at < self._ttl:
                return self._enabled

            try:
                enabled = bool(self._loader())
            except Exception:
                logger.exception("Maintenance flag read failed; keeping last known value")
                if self._enabled is None:
                    return True
                return self._enabled

            if enabled != self._enabled:
                logger.info("Maintenance mode %s", "enabled" if enabled else "disabled")
            self._enabled = enabled
            self._cached_at = now
            return enabled

    def invalidate(self) -> None:
        with self._lock:
            self._cached_at = None

    @property
    def cached_at(self) -> float | None:
        return self._cached_at


def load_maintenance_flag() -> bool:
    """Read the authoritative flag: settings row first, then app config."""
    from projecthub.models import db
    from projecthub.models.settings import SystemSetting

    try:
        row = SystemSetting.query.filter_by(key="maintenance_mode").first()
    except SQLAlchemyError:
        db.session.rollback()
        raise
    if row is not None:
        return bool(row.value)
    return bool(current_app.config.get("MAINTENANCE_MODE", False))


def get_gate() -> MaintenanceGate:
    return current_app.extensions["maintenance_gate"]


def is_maintenance_active() -> bool:
    return get_gate().is_active()


def invalidate_maintenance_cache() -> None:
    get_gate().invalidate()
