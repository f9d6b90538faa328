import html
import logging
from dataclasses import dataclass
from urllib.parse import urlencode, urlsplit, urlunsplit

import httpx

from hall_reserve.config import settings
from hall_reserve.models.booking import ApprovalStatus
from hall_reserve.services.approval import STAGE_TITLES
from hall_reserve.services.events import BookingSubmitted, BookingDecided, StageRecipients

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actionable:
    booking_id: str
    stage: int


def build_action_url(base_url: str, action: str, booking_id: str, stage: int) -> str:
    """Magic-link URL: ``<base>?action=<approve|reject>&id=<booking>&stage=<n>``."""
    parts = urlsplit(base_url)
    query = urlencode({"action": action, "id": booking_id, "stage": stage})
    return urlunsplit((parts.scheme, parts.netloc, parts.path or "/", query, ""))


def render_html(body_text: str, actionable: Actionable | None = None, base_url: str | None = None) -> str:
    content = "<p>" + "<br>".join(html.escape(line) for line in body_text.split("\n")) + "</p>"
    if actionable is None:
        return content

    base_url = base_url or settings.APP_BASE_URL
    approve_url = html.escape(build_action_url(base_url, "approve", actionable.booking_id, actionable.stage))
    reject_url = html.escape(build_action_url(base_url, "reject", actionable.booking_id, actionable.stage))
    button = ("padding: 10px 20px; background-color: {color}; color: white; text-decoration: none; "
              "border-radius: 6px; font-weight: bold; font-family: sans-serif; display: inline-block;")
    return content + (
        '<br><br>'
        '<div style="display: flex; gap: 15px; margin-top: 10px;">'
        f'<a href="{approve_url}" style="{button.format(color="#16a34a")}">Approve Request</a>'
        f'<a href="{reject_url}" style="{button.format(color="#dc2626")}">Reject Request</a>'
        '</div><br>'
        '<p style="font-size: 12px; color: #666;">If you are not logged in, you will be prompted '
        'to log in before the action executes.</p>'
    )


def approval_request_body(summary: BookingSubmitted) -> str:
    return (
        "A new booking request is awaiting your approval.\n"
        f"Staff Name: {summary.booked_by}\n"
        f"Room: {summary.hall_name}\n"
        f"Date: {summary.required_date}\n"
        f"Department: {summary.department}\n"
        "Click the button below to Approve or Reject immediately."
    )


def approval_request_subject(stage: int) -> str:
    return f"IHUB Booking Approval Required ({STAGE_TITLES[stage]})"


class NotificationService:
    """
    Composes workflow e-mails and hands them to the mail relay.

    Every send is a single attempt. Failures are logged and reported through
    the return value; they never propagate into the workflow.
    """

    def __init__(self, api_url: str | None = None, timeout: float | None = None,
                 base_url: str | None = None, transport: httpx.BaseTransport | None = None):
        self.api_url = settings.MAIL_API_URL if api_url is None else api_url
        self.timeout = timeout or settings.MAIL_TIMEOUT_SECONDS
        self.base_url = base_url or settings.APP_BASE_URL
        self.transport = transport

    # ─── Delivery ─────────────────────────────────────────────────────────────
    def notify(self, to: str, subject: str, body_text: str, actionable: Actionable | None = None) -> bool:
        payload = {"to": to, "subject": subject, "html": render_html(body_text, actionable, self.base_url)}
        return self.send(payload)

    def send(self, payload: dict) -> bool:
        if not self.api_url:
            logger.info(f"[MAIL] relay not configured, console delivery | To={payload['to']} | "
                        f"Subject={payload['subject']}")
            return True
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(self.api_url, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"[MAIL] delivery to {payload['to']} failed: {e}")
            return False

        if response.is_success:
            logger.info(f"[MAIL] sent to {payload['to']} | Subject={payload['subject']}")
            return True
        logger.warning(f"[MAIL] relay rejected message to {payload['to']}: "
                       f"HTTP {response.status_code} {response.text[:200]}")
        return False

    # ─── Workflow events ──────────────────────────────────────────────────────
    def handle(self, event) -> None:
        if isinstance(event, BookingSubmitted):
            self.on_submitted(event)
        elif isinstance(event, BookingDecided):
            self.on_decided(event)
        else:
            logger.warning(f"Ignoring unknown workflow event {type(event).__name__}")

    def request_approval(self, summary: BookingSubmitted, recipients: StageRecipients) -> None:
        if recipients.fallback:
            logger.warning(f"No users hold the stage {recipients.stage} role; "
                           f"using fallback address {recipients.emails[0]}")
        body = approval_request_body(summary)
        subject = approval_request_subject(recipients.stage)
        for email in recipients.emails:
            self.notify(email, subject, body, Actionable(summary.booking_id, recipients.stage))

    def on_submitted(self, event: BookingSubmitted) -> None:
        for recipients in event.recipients:
            self.request_approval(event, recipients)

    def on_decided(self, event: BookingDecided) -> None:
        if event.decision == ApprovalStatus.REJECTED:
            self.notify(
                event.submitter_email,
                "Booking Request Rejected",
                f"Your booking request for {event.booking_id} has been rejected at Stage {event.stage}.",
            )
        elif event.finalised:
            self.notify(
                event.submitter_email,
                "Booking Request Confirmed ✅",
                "Your booking request has been fully approved and confirmed!",
            )
        elif event.next_stage is not None and event.booking_summary is not None:
            self.request_approval(event.booking_summary, event.next_stage)


notification_service = NotificationService()


def get_notification_service() -> NotificationService:
    """FastAPI dependency; overridden in tests."""
    return notification_service
