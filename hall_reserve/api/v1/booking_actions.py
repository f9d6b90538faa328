from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session

from hall_reserve.config import settings
from hall_reserve.database import get_db
from hall_reserve.dependencies import get_optional_user
from hall_reserve.models.user import User
from hall_reserve.api.v1.bookings import background_emitter
from hall_reserve.schemas.common import success_response
from hall_reserve.services.booking_service import booking_service
from hall_reserve.services.magic_link import DENIED, strip_action_params
from hall_reserve.services.notification_service import NotificationService, get_notification_service
from hall_reserve.utils.exceptions import RoleMismatchException

router = APIRouter(prefix="/booking-actions")


@router.get("", summary="Resolve an e-mailed approve/reject link")
def resolve_booking_action(
    request:          Request,
    background_tasks: BackgroundTasks,
    db:               Session             = Depends(get_db),
    current_user:     User | None         = Depends(get_optional_user),
    notifier:         NotificationService = Depends(get_notification_service),
):
    """
    Query parameters: `action` (approve | reject), `id` (booking id), `stage` (1 | 2 | 3).

    The response carries `redirectTo`, the link without its action parameters,
    which the client should navigate to whenever `clearParams` is true.
    A decision the workflow refuses comes back as `noop` with `errorCode` set.
    """
    params = dict(request.query_params)
    link_url = f"{settings.APP_BASE_URL}?{request.url.query}" if request.url.query else settings.APP_BASE_URL
    redirect_to = strip_action_params(link_url)

    resolution = booking_service.resolve_magic_link(
        db, params, current_user, background_emitter(background_tasks, notifier),
    )
    if resolution.outcome == DENIED:
        raise RoleMismatchException(resolution.action.stage, resolution.required_role, redirect_to)

    return success_response(resolution.message, {
        "outcome":       resolution.outcome,
        "bookingId":     resolution.action.booking_id if resolution.action else None,
        "stage":         resolution.action.stage if resolution.action else None,
        "requiredRole":  resolution.required_role,
        "loginRequired": resolution.login_required,
        "clearParams":   resolution.clear_params,
        "errorCode":     resolution.error_code,
        "redirectTo":    redirect_to if resolution.clear_params else link_url,
    })
