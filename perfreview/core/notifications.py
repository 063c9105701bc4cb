"""
Outgoing notifications.

Delivery is best effort: a failed notification is logged and never undoes
the state change that triggered it.
"""
from __future__ import annotations

import abc
import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from perfreview.core.config import settings

logger = logging.getLogger(__name__)

REVIEW_NOTIFICATION = "review_notification"
MEETING_INVITATION = "meeting_invitation"
APPEAL_NOTIFICATION = "appeal_notification"


@dataclass(frozen=True)
class RenderedMessage:
    subject: str
    body: str


def _render_review(ctx: Mapping[str, Any]) -> RenderedMessage:
    lines = [
        f"This is a notification regarding the performance review for {ctx['employee_name']}.",
        f"Action Required: {ctx['action']}",
    ]
    if ctx.get("deadline"):
        lines.append(f"Deadline: {ctx['deadline']}")
    lines.append("Please log in to the system to take the required action.")
    return RenderedMessage(subject=f"Performance Review: {ctx['action']}", body="\n".join(lines))


def _render_meeting(ctx: Mapping[str, Any]) -> RenderedMessage:
    lines = [
        "You have a scheduled 1:1 performance review meeting.",
        f"Employee: {ctx['employee_name']}",
        f"Manager: {ctx['manager_name']}",
        f"Date & Time: {ctx['scheduled_at']}",
    ]
    if ctx.get("meeting_link"):
        lines.append(f"Meeting Link: {ctx['meeting_link']}")
    return RenderedMessage(
        subject=f"1:1 Performance Review Meeting - {ctx['employee_name']}",
        body="\n".join(lines),
    )


def _render_appeal(ctx: Mapping[str, Any]) -> RenderedMessage:
    lines = [
        f"Hello {ctx['manager_name']},",
        f"An appeal request has been submitted by {ctx['employee_name']}.",
        f"Reason: {ctx['reason']}",
    ]
    if ctx.get("appeal_id"):
        lines.append(f"Appeal ID: {ctx['appeal_id']}")
    lines.append("Please review this appeal and take appropriate action in the system.")
    return RenderedMessage(subject=f"Appeal Request - {ctx['employee_name']}", body="\n".join(lines))


TEMPLATES: dict[str, Callable[[Mapping[str, Any]], RenderedMessage]] = {
    REVIEW_NOTIFICATION: _render_review,
    MEETING_INVITATION: _render_meeting,
    APPEAL_NOTIFICATION: _render_appeal,
}


def render(template_kind: str, context: Mapping[str, Any]) -> RenderedMessage:
    try:
        renderer = TEMPLATES[template_kind]
    except KeyError:
        raise ValueError(f"Unknown notification template: {template_kind}")
    return renderer(context)


class Notifier(abc.ABC):
    """Delivery backend. Returns True when the message was accepted."""

    @abc.abstractmethod
    def notify(self, recipient_email: str, template_kind: str, context: Mapping[str, Any]) -> bool:
        ...


class LoggingNotifier(Notifier):
    """Writes rendered messages to the service log instead of a mail server."""

    def __init__(self, sender: str | None = None):
        self.sender = sender or settings.NOTIFICATION_SENDER

    def notify(self, recipient_email: str, template_kind: str, context: Mapping[str, Any]) -> bool:
        message = render(template_kind, context)
        logger.info(
            "Notification from=%s to=%s subject=%r\n%s",
            self.sender,
            recipient_email,
            message.subject,
            message.body,
        )
        return True


class DisabledNotifier(Notifier):
    def notify(self, recipient_email: str, template_kind: str, context: Mapping[str, Any]) -> bool:
        logger.debug("Notifications disabled, dropping %s to %s", template_kind, recipient_email)
        return True


def get_notifier() -> Notifier:
    if not settings.NOTIFICATIONS_ENABLED:
        return DisabledNotifier()
    return LoggingNotifier()


def dispatch(
    notifier: Notifier,
    recipient_email: str | None,
    template_kind: str,
    context: Mapping[str, Any],
) -> bool:
    if not recipient_email:
        logger.warning("Skipping %s: recipient has no email", template_kind)
        return False
    try:
        delivered = notifier.notify(recipient_email, template_kind, context)
    except Exception:
        logger.exception("Notification %s to %s failed", template_kind, recipient_email)
        return False
    if not delivered:
        logger.error("Notification %s to %s was not accepted", template_kind, recipient_email)
    return delivered
