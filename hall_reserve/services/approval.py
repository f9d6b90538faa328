"""
Approval state machine.

A booking carries three stage statuses and one overall status. Rejection at
any stage is terminal; only an approval at the final stage makes the booking
Approved. Stage ownership is a fixed lookup table shared by the decision path
and the dashboard views.
"""
from hall_reserve.models.booking import ApprovalStatus
from hall_reserve.models.role import RoleName
from hall_reserve.utils.exceptions import BookingNotPendingException, StageOutOfOrderException


STAGE_ROLES: dict[int, RoleName] = {
    1: RoleName.ADMIN_IC,
    2: RoleName.COORDINATOR,
    3: RoleName.HEAD_OPS,
}
ROLE_STAGES: dict[RoleName, int] = {role: stage for stage, role in STAGE_ROLES.items()}
STAGES = tuple(sorted(STAGE_ROLES))
FINAL_STAGE = STAGES[-1]

STAGE_TITLES: dict[int, str] = {
    1: "Admin I/C",
    2: "Coordinator",
    3: "Head of Ops",
}


def status_key(stage: int) -> str:
    return f"stage{stage}_status"


def approved_by_key(stage: int) -> str:
    return f"stage{stage}_approved_by"


def required_role(stage: int) -> RoleName:
    return STAGE_ROLES[stage]


def stage_for_role(role) -> int | None:
    """Stage owned by ``role``, or None for roles that approve nothing."""
    try:
        return ROLE_STAGES.get(RoleName(role))
    except ValueError:
        return None


def _value(status) -> str:
    return status.value if isinstance(status, ApprovalStatus) else status


def initial_workflow_fields() -> dict:
    fields = {"status": ApprovalStatus.PENDING.value}
    for stage in STAGES:
        fields[status_key(stage)] = ApprovalStatus.PENDING.value
    return fields


def is_terminal(booking: dict) -> bool:
    return _value(booking["status"]) != ApprovalStatus.PENDING.value


def stage_status(booking: dict, stage: int) -> str:
    return _value(booking[status_key(stage)])


def stage_is_open(booking: dict, stage: int, sequential: bool = False) -> bool:
    """Whether ``stage`` may be decided now on ``booking``."""
    if is_terminal(booking):
        return False
    if sequential and stage > STAGES[0]:
        return stage_status(booking, stage - 1) == ApprovalStatus.APPROVED.value
    return True


def apply_decision(
    booking: dict,
    stage: int,
    decision: ApprovalStatus,
    actor_name: str,
    sequential: bool = False,
) -> dict:
    """
    Compute the field updates for a stage decision.

    Returns only the changed fields; the caller persists them. Raises
    BookingNotPendingException for a booking that is already Approved or
    Rejected, and StageOutOfOrderException when ``sequential`` is set and
    the previous stage has not approved yet.
    """
    if stage not in STAGE_ROLES:
        raise ValueError(f"Unknown approval stage: {stage}")
    decision = ApprovalStatus(decision)
    if decision == ApprovalStatus.PENDING:
        raise ValueError("A stage decision must be Approved or Rejected")
    if is_terminal(booking):
        raise BookingNotPendingException(_value(booking["status"]))
    if not stage_is_open(booking, stage, sequential):
        raise StageOutOfOrderException(stage)

    updates = {
        status_key(stage):      decision.value,
        approved_by_key(stage): actor_name,
    }
    if decision == ApprovalStatus.REJECTED:
        updates["status"] = ApprovalStatus.REJECTED.value
    elif stage == FINAL_STAGE:
        updates["status"] = ApprovalStatus.APPROVED.value
    return updates


def is_repeat_decision(booking: dict, stage: int, decision: ApprovalStatus) -> bool:
    """True when the stage already holds ``decision`` (a replayed action)."""
    return stage_status(booking, stage) == ApprovalStatus(decision).value


def actionable_stage(booking: dict, role, uid: str | None, sequential: bool = False) -> int | None:
    """Stage the caller may act on for ``booking`` from the dashboard, if any."""
    stage = stage_for_role(role)
    if stage is None or booking.get("userId") == uid:
        return None
    if stage_status(booking, stage) != ApprovalStatus.PENDING.value:
        return None
    return stage if stage_is_open(booking, stage, sequential) else None
