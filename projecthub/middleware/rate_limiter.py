"""
Rate limiting configuration.

Applies per-blueprint limits using Flask-Limiter.  The Limiter instance is
created in projecthub/__init__.py with no default limits; this module sets
the limit for each route category.

Usage:
    from projecthub.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

WRITE_LIMIT = "60/minute"
READ_LIMIT = "200/minute"

# Blueprints whose routes are mostly mutations.
WRITE_BLUEPRINTS = ("projects", "notes", "costs", "proposals", "gantt", "admin")
READ_BLUEPRINTS = ("audit", "notifications")


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - Mutation blueprints:  60/minute
        - Read blueprints:      200/minute
        - Health / maintenance: exempt

    Rate limiting is disabled in testing mode.
    """
    if app.config.get("TESTING"):
        logger.debug("Rate limiter disabled (TESTING=True)")
        return

    for bp_name in WRITE_BLUEPRINTS:
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(WRITE_LIMIT)(bp)

    for bp_name in READ_BLUEPRINTS:
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(READ_LIMIT)(bp)

    for bp_name in ("health", "maintenance"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.exempt(bp)

    logger.info("Rate limiter configured: write=%s read=%s", WRITE_LIMIT, READ_LIMIT)
