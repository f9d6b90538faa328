from sqlalchemy.orm import Session
from hall_reserve.models.audit_log import AuditLog


def log_action(
    db: Session,
    user_id: str | None,
    action: str,
    entity_type: str,
    entity_id: str | None = None,
    description: str | None = None,
) -> None:
    """
    Write an audit log entry.

    Args:
        db:          Active DB session (will NOT commit; caller commits)
        user_id:     uid of the user performing the action (None = system action)
        action:      Verb: SUBMIT, DECIDE, CANCEL, REGISTER, LOGIN, ...
        entity_type: Model name: "Booking", "User", "Hall"
        entity_id:   Primary key of the affected record
        description: Human-readable description

    Usage:
        log_action(db, actor.uid, "DECIDE", "Booking", booking_id,
                   f"Stage 2 Approved by {actor.name}")
        db.commit()
    """
    entry = AuditLog(
        userId=user_id,
        action=action,
        entityType=entity_type,
        entityId=entity_id,
        description=description,
    )
    db.add(entry)
