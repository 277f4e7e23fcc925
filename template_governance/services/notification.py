"""
Notification Service: in-app notifications plus email.

``send`` is best-effort: the governance transaction is already committed
when it runs, and a delivery failure is logged, never raised.  The one
exception is ``escalate_emergency``, which is called synchronously when an
emergency rollback fails; it still never raises, but it always reaches the
CRITICAL log even if every channel is down.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError

from template_governance.models import db
from template_governance.models.notification import Notification
from template_governance.services.email_service import EmailService

logger = logging.getLogger(__name__)


class NotificationService:
    """Stateless service class for notification operations."""

    # ── Delivery ──────────────────────────────────────────────────────────

    @staticmethod
    def send(*, recipients, title, message="", category="system", severity="info",
             entity_type="", entity_id=None, email=True):
        """
        Notify each recipient in-app and, when ``email`` is set, by email.

        Returns the number of recipients that got at least the in-app record.
        """
        recipients = [r for r in dict.fromkeys(recipients or []) if r]
        if not recipients:
            return 0
        try:
            for recipient in recipients:
                db.session.add(Notification(
                    recipient=recipient,
                    title=title,
                    message=message,
                    category=category,
                    severity=severity,
                    entity_type=entity_type,
                    entity_id=str(entity_id) if entity_id is not None else None,
                ))
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Notification '%s' could not be stored", title)
            return 0

        if email:
            subject, body = EmailService.render(title=title, message=message, severity=severity)
            for recipient in recipients:
                if "@" not in recipient:
                    continue
                try:
                    EmailService.send(to_email=recipient, subject=subject, html_body=body)
                except Exception as exc:  # smtplib / socket errors
                    logger.error("Email to %s failed: %s", recipient, exc)
        return len(recipients)

    @staticmethod
    def escalate_emergency(*, contact, title, message, entity_type="", entity_id=None):
        """Page the emergency contact.  Logs CRITICAL before trying any channel."""
        logger.critical(
            "EMERGENCY ESCALATION to %s: %s: %s", contact, title, message,
            extra={"event_type": "emergency.escalation", "security_code": "emergency_rollback_failed"},
        )
        return NotificationService.send(
            recipients=[contact, "all"],
            title=title,
            message=message,
            category="emergency",
            severity="critical",
            entity_type=entity_type,
            entity_id=entity_id,
        )

    # ── Query ─────────────────────────────────────────────────────────────

    @staticmethod
    def list_for_recipient(recipient="all", unread_only=False, limit=50, offset=0):
        """
        Retrieve notifications for a recipient, newest first.
        """
        q = Notification.query.filter(
            (Notification.recipient == recipient) | (Notification.recipient == "all")
        )
        if unread_only:
            q = q.filter_by(is_read=False)
        total = q.count()
        items = q.order_by(Notification.created_at.desc(), Notification.id.desc()).offset(offset).limit(limit).all()
        return items, total

    @staticmethod
    def unread_count(recipient="all"):
        """Return count of unread notifications."""
        return Notification.query.filter(
            (Notification.recipient == recipient) | (Notification.recipient == "all")
        ).filter_by(is_read=False).count()

    # ── Actions ───────────────────────────────────────────────────────────

    @staticmethod
    def mark_read(notification_id):
        """Mark a single notification as read."""
        notif = db.session.get(Notification, notification_id)
        if notif:
            notif.mark_read()
            db.session.commit()
        return notif

    @staticmethod
    def mark_all_read(recipient="all"):
        """Mark all notifications for a recipient as read."""
        q = Notification.query.filter(
            (Notification.recipient == recipient) | (Notification.recipient == "all")
        ).filter_by(is_read=False)
        now = datetime.now(timezone.utc)
        count = q.update({"is_read": True, "read_at": now}, synchronize_session="fetch")
        db.session.commit()
        return count
