"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.
The Limiter instance is created in template_governance/__init__.py with no
default limits; this module applies granular limits per route category.

The confirm endpoint gets its own, tighter limit: the confirmation text is
a friction control, and repeated wrong guesses should slow down.

Usage:
    from template_governance.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

CONFIRM_ENDPOINT = "governance.confirm_request"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - Governance / registry writes:  GOVERNANCE_WRITE_RATE_LIMIT (POST only)
        - Confirm:                       CONFIRM_RATE_LIMIT
        - Reads:                         200/minute
        - Health check:                  exempt

    Rate limiting is disabled in testing mode.
    """
    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    write_limit = app.config.get("GOVERNANCE_WRITE_RATE_LIMIT", "60/minute")
    confirm_limit = app.config.get("CONFIRM_RATE_LIMIT", "10/minute")

    for bp_name in ("governance", "registry"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(write_limit, methods=["POST"])(bp)

    for bp_name in ("audit", "notification"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit("200/minute")(bp)

    view = app.view_functions.get(CONFIRM_ENDPOINT)
    if view is not None:
        app.view_functions[CONFIRM_ENDPOINT] = limiter.limit(confirm_limit)(view)

    # Health checks are exempt from rate limiting
    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info(
        "Rate limiter configured: writes: %s, confirm: %s, read: 200/min",
        write_limit, confirm_limit,
    )
