"""
Stakeholder directory: resolves an approval role to one person.

Resolution happens once, when a change request is opened; the resolved
identity (email) is what the approver must present on approve.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from email_validator import EmailNotValidError, validate_email
from flask import current_app

from template_governance.core.exceptions import ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Stakeholder:
    role: str
    name: str
    email: str


class StakeholderDirectory:
    """Role → stakeholder lookup."""

    def resolve(self, role: str) -> Stakeholder:
        raise NotImplementedError


class ConfigStakeholderDirectory(StakeholderDirectory):
    """Directory backed by a ``{role: {name, email}}`` mapping.

    Defaults to the app's ``STAKEHOLDER_DIRECTORY`` setting.
    """

    def __init__(self, entries: dict | None = None) -> None:
        self._entries = entries

    @property
    def entries(self) -> dict:
        if self._entries is not None:
            return self._entries
        return current_app.config.get("STAKEHOLDER_DIRECTORY", {})

    def resolve(self, role: str) -> Stakeholder:
        entry = self.entries.get(role)
        if not entry or not entry.get("email"):
            raise ValidationError(
                f"No stakeholder configured for role {role!r}",
                details={"role": role},
            )
        try:
            email = validate_email(entry["email"], check_deliverability=False).normalized
        except EmailNotValidError as exc:
            logger.error("Stakeholder directory entry for %s has an invalid email: %s", role, exc)
            raise ValidationError(
                f"Stakeholder email for role {role!r} is invalid",
                details={"role": role, "email": str(exc)},
            ) from exc
        return Stakeholder(role=role, name=entry.get("name") or role, email=email)
