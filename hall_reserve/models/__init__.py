"""
Import all models here so that:
1. Alembic can auto-detect them when generating migrations
2. Relationships between models resolve correctly

Order matters: import parent tables before child tables.
"""

from hall_reserve.models.role import RoleName
from hall_reserve.models.user import User
from hall_reserve.models.hall import Hall
from hall_reserve.models.booking import Booking, ApprovalStatus, Duration, AirConditioning
from hall_reserve.models.approval_log import ApprovalLog
from hall_reserve.models.audit_log import AuditLog

__all__ = [
    "RoleName",
    "User",
    "Hall",
    "Booking",
    "ApprovalStatus",
    "Duration",
    "AirConditioning",
    "ApprovalLog",
    "AuditLog",
]
