from fastapi import HTTPException, status


# ═══════════════════════════════════════════════════════════════════════════════
# ERROR CODES: machine-readable constants for frontend switch/case
# ═══════════════════════════════════════════════════════════════════════════════
class ErrorCode:
    VALIDATION_ERROR        = "VALIDATION_ERROR"
    UNAUTHORIZED            = "UNAUTHORIZED"
    TOKEN_EXPIRED           = "TOKEN_EXPIRED"
    FORBIDDEN               = "FORBIDDEN"
    NOT_FOUND               = "NOT_FOUND"
    DUPLICATE_ENTRY         = "DUPLICATE_ENTRY"
    BOOKING_CONFLICT        = "BOOKING_CONFLICT"
    BOOKING_NOT_PENDING     = "BOOKING_NOT_PENDING"
    STAGE_OUT_OF_ORDER      = "STAGE_OUT_OF_ORDER"
    SELF_APPROVAL           = "SELF_APPROVAL"
    ROLE_MISMATCH           = "ROLE_MISMATCH"
    PERSISTENCE_FAILED      = "PERSISTENCE_FAILED"
    INTERNAL_SERVER_ERROR   = "INTERNAL_SERVER_ERROR"


# ═══════════════════════════════════════════════════════════════════════════════
# BASE EXCEPTION
# ═══════════════════════════════════════════════════════════════════════════════
class AppException(HTTPException):
    """
    Base exception for all application-level errors.
    Carries a machine-readable error_code for frontend handling.
    """
    def __init__(
        self,
        status_code: int,
        message: str,
        error_code: str,
        details: list | dict | None = None,
        field: str | None = None,
    ):
        super().__init__(status_code=status_code, detail={
            "message": message,
            "error": {
                "code": error_code,
                "details": details,
                "field": field,
            }
        })

    @property
    def message(self) -> str:
        return self.detail["message"]

    @property
    def error_code(self) -> str:
        return self.detail["error"]["code"]


# ═══════════════════════════════════════════════════════════════════════════════
# CONCRETE EXCEPTIONS
# ═══════════════════════════════════════════════════════════════════════════════

class UnauthorizedException(AppException):
    def __init__(self, message: str = "Authentication required"):
        super().__init__(status.HTTP_401_UNAUTHORIZED, message, ErrorCode.UNAUTHORIZED)


class TokenExpiredException(AppException):
    def __init__(self):
        super().__init__(status.HTTP_401_UNAUTHORIZED, "Access token has expired", ErrorCode.TOKEN_EXPIRED)


class ForbiddenException(AppException):
    def __init__(self, message: str = "You do not have permission to perform this action"):
        super().__init__(status.HTTP_403_FORBIDDEN, message, ErrorCode.FORBIDDEN)


class NotFoundException(AppException):
    def __init__(self, resource: str = "Resource"):
        super().__init__(status.HTTP_404_NOT_FOUND, f"{resource} not found", ErrorCode.NOT_FOUND)


class DuplicateEntryException(AppException):
    def __init__(self, message: str = "Record already exists", field: str | None = None):
        super().__init__(status.HTTP_409_CONFLICT, message, ErrorCode.DUPLICATE_ENTRY, field=field)


class BookingValidationException(AppException):
    """Per-field form errors; raised before anything is written."""
    def __init__(self, errors: dict[str, str]):
        self.errors = errors
        super().__init__(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "Booking request is invalid. Please check your input.",
            ErrorCode.VALIDATION_ERROR,
            details=[{"field": f, "message": m} for f, m in errors.items()],
        )


class BookingConflictException(AppException):
    def __init__(self, conflicting_booking: dict | None = None, message: str | None = None):
        self.conflicting_booking = conflicting_booking
        super().__init__(
            status.HTTP_409_CONFLICT,
            message or "Hall is already booked for the requested time slot",
            ErrorCode.BOOKING_CONFLICT,
            details={"conflictingBookingId": conflicting_booking.get("id")} if conflicting_booking else None,
            field="startTime",
        )


class BookingNotPendingException(AppException):
    def __init__(self, current_status: str | None = None):
        message = "Booking must be in Pending status to perform this action"
        if current_status:
            message += f" (current status: {current_status})"
        super().__init__(status.HTTP_400_BAD_REQUEST, message, ErrorCode.BOOKING_NOT_PENDING)


class StageOutOfOrderException(AppException):
    def __init__(self, stage: int):
        super().__init__(
            status.HTTP_400_BAD_REQUEST,
            f"Stage {stage} cannot be decided before stage {stage - 1} is approved",
            ErrorCode.STAGE_OUT_OF_ORDER,
        )


class SelfApprovalException(AppException):
    def __init__(self):
        super().__init__(
            status.HTTP_403_FORBIDDEN,
            "You cannot approve or reject your own booking",
            ErrorCode.SELF_APPROVAL,
        )


class RoleMismatchException(AppException):
    def __init__(self, stage: int, required_role: str, redirect_to: str | None = None):
        self.required_role = required_role
        super().__init__(
            status.HTTP_403_FORBIDDEN,
            f"Access Denied: You must be logged in as an {required_role} to process Stage {stage} approvals.",
            ErrorCode.ROLE_MISMATCH,
            details={"requiredRole": required_role, "stage": stage, "redirectTo": redirect_to},
        )
