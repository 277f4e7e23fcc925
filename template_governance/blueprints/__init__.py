"""
Template Version Governance Service
Blueprint registry and shared blueprint helpers.
"""

import logging

from flask import request
from sqlalchemy.exc import SQLAlchemyError

from template_governance.core.exceptions import (
    ConflictError,
    GovernanceError,
    NotFoundError,
    ValidationError,
)
from template_governance.models import db
from template_governance.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def register_error_handlers(bp):
    """Map service exceptions to JSON error responses for ``bp``."""

    @bp.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        return api_error(E.NOT_FOUND, str(error))

    @bp.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        return api_error(E.VALIDATION_RULE, str(error), details=error.details)

    @bp.errorhandler(ConflictError)
    def _handle_conflict(error: ConflictError):
        return api_error(E.CONFLICT_DUPLICATE, str(error), details={"field": error.field})

    @bp.errorhandler(GovernanceError)
    def _handle_governance(error: GovernanceError):
        return api_error(error.code, str(error), status=error.http_status, details=error.details)

    @bp.errorhandler(SQLAlchemyError)
    def _handle_db(error: SQLAlchemyError):
        db.session.rollback()
        logger.exception("Database error in %s endpoint=%s", bp.name, request.endpoint)
        return api_error(E.DATABASE, "Database error")
