"""
Resolution of e-mailed approve/reject links.

A link carries ``action``, ``id`` and ``stage``. Once a signed-in user opens it
the action is either applied through the workflow or denied for the wrong
role, and in both cases the caller is told to drop the parameters so a reload
does not replay it. Without a signed-in user nothing happens and the
parameters are kept for after sign-in.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Mapping
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from hall_reserve.models.booking import ApprovalStatus
from hall_reserve.services import approval
from hall_reserve.utils.exceptions import AppException

logger = logging.getLogger(__name__)

ACTION_PARAMS = ("action", "id", "stage")
ACTION_DECISIONS = {
    "approve": ApprovalStatus.APPROVED,
    "reject":  ApprovalStatus.REJECTED,
}

APPLIED = "applied"
DENIED = "denied"
NOOP = "noop"


@dataclass(frozen=True)
class MagicLinkAction:
    action: str
    booking_id: str
    stage: int

    @property
    def decision(self) -> ApprovalStatus:
        return ACTION_DECISIONS[self.action]


@dataclass(frozen=True)
class ActionResolution:
    outcome: str
    clear_params: bool
    message: str
    action: MagicLinkAction | None = None
    required_role: str | None = None
    login_required: bool = False
    error_code: str | None = None


def parse_action_params(params: Mapping[str, str]) -> MagicLinkAction | None:
    action, booking_id, stage = (params.get(name) for name in ACTION_PARAMS)
    if not (action and booking_id and stage):
        return None
    try:
        stage_no = int(stage)
    except (TypeError, ValueError):
        return None
    if stage_no not in approval.STAGES or action not in ACTION_DECISIONS:
        return None
    return MagicLinkAction(action=action, booking_id=booking_id, stage=stage_no)


def strip_action_params(url: str) -> str:
    """The same URL with the magic-link parameters removed."""
    parts = urlsplit(url)
    kept = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k not in ACTION_PARAMS]
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(kept), parts.fragment))


def resolve_action(
    params: Mapping[str, str],
    current_user,
    decide: Callable[[str, int, ApprovalStatus, object], object],
    lookup: Callable[[str], dict | None] | None = None,
) -> ActionResolution:
    """
    Apply, deny or ignore a magic-link action for ``current_user``.

    ``decide(booking_id, stage, decision, actor)`` performs the transition;
    ``lookup(booking_id)`` lets a replayed link for a decision the stage
    already holds resolve as a no-op instead of writing again. A decision the
    workflow refuses (booking already closed, own booking, stage out of order)
    also resolves as a no-op carrying the refusal's message and error code.
    """
    if not any(params.get(name) for name in ACTION_PARAMS):
        return ActionResolution(outcome=NOOP, clear_params=False, message="No action requested")

    link = parse_action_params(params)
    if link is None:
        return ActionResolution(outcome=NOOP, clear_params=True, message="Malformed approval link")

    if current_user is None:
        return ActionResolution(outcome=NOOP, clear_params=False, action=link, login_required=True,
                                message="Please sign in to process this approval request")

    required = approval.required_role(link.stage)
    if current_user.role != required:
        logger.warning(f"Magic link denied: user {current_user.uid} ({current_user.role}) "
                       f"attempted stage {link.stage} on booking {link.booking_id}")
        return ActionResolution(
            outcome=DENIED, clear_params=True, action=link, required_role=required.value,
            message=(f"Access Denied: You must be logged in as an {required.value} "
                     f"to process Stage {link.stage} approvals."),
        )

    if lookup is not None:
        booking = lookup(link.booking_id)
        if booking is None:
            return ActionResolution(outcome=NOOP, clear_params=True, action=link,
                                    message="This booking no longer exists")
        if approval.is_repeat_decision(booking, link.stage, link.decision):
            return ActionResolution(outcome=NOOP, clear_params=True, action=link,
                                    message=f"Stage {link.stage} is already {link.decision.value.lower()}")

    try:
        decide(link.booking_id, link.stage, link.decision, current_user)
    except AppException as e:
        logger.info(f"Magic link for booking {link.booking_id} stage {link.stage} refused: {e.message}")
        return ActionResolution(outcome=NOOP, clear_params=True, action=link, required_role=required.value,
                                message=e.message, error_code=e.error_code)
    return ActionResolution(
        outcome=APPLIED, clear_params=True, action=link, required_role=required.value,
        message=f"Request {link.decision.value.lower()} via email link",
    )
