import asyncio
import json
from datetime import date, time

from fastapi import APIRouter, BackgroundTasks, Depends, Path, Query, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from hall_reserve.config import settings
from hall_reserve.database import get_db
from hall_reserve.dependencies import get_current_user
from hall_reserve.models.booking import Duration
from hall_reserve.models.role import RoleName
from hall_reserve.models.user import User
from hall_reserve.repositories.booking_repository import SqlBookingRepository, booking_hub
from hall_reserve.schemas.booking import BookingCreateRequest, StageDecisionRequest
from hall_reserve.schemas.common import success_response
from hall_reserve.services.booking_service import booking_service, serialize_booking
from hall_reserve.services.notification_service import NotificationService, get_notification_service

router = APIRouter(prefix="/bookings")

STREAM_KEEPALIVE_SECONDS = 15


def background_emitter(background_tasks: BackgroundTasks, notifier: NotificationService):
    """Queue workflow events for delivery after the response has been sent."""
    def emit(event) -> None:
        background_tasks.add_task(notifier.handle, event)
    return emit


@router.get("/availability", summary="Check whether a slot is free (advisory)")
async def check_availability(
    hallId:       str      = Query(...),
    requiredDate: date     = Query(...),
    startTime:    time     = Query(...),
    duration:     Duration = Query(...),
    db:           Session  = Depends(get_db),
    _:            User     = Depends(get_current_user),
):
    if settings.AVAILABILITY_CHECK_DELAY_MS > 0:
        await asyncio.sleep(settings.AVAILABILITY_CHECK_DELAY_MS / 1000)
    data = await run_in_threadpool(
        booking_service.check_availability, db, hallId, requiredDate, startTime, duration,
    )
    return success_response("Slot available" if data["available"] else "Slot unavailable", data)


@router.get("/stream", summary="Live booking set (server-sent events)")
async def stream_bookings(
    request:      Request,
    db:           Session = Depends(get_db),
    current_user: User    = Depends(get_current_user),
):
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def visible(snapshot: list[dict]) -> list[dict]:
        if current_user.role == RoleName.STAFF:
            snapshot = [d for d in snapshot if d["userId"] == current_user.uid]
        return [serialize_booking(d, current_user) for d in snapshot]

    def push(snapshot: list[dict]) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, snapshot)

    # Subscribed before the initial load: no write in between is lost
    unsubscribe = booking_hub.subscribe(push)
    try:
        initial = await run_in_threadpool(SqlBookingRepository(db).list_all)
    except Exception:
        unsubscribe()
        raise

    async def events():
        try:
            yield f"data: {json.dumps(visible(initial))}\n\n"
            while not await request.is_disconnected():
                try:
                    snapshot = await asyncio.wait_for(queue.get(), timeout=STREAM_KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    yield ": keep-alive\n\n"
                    continue
                yield f"data: {json.dumps(visible(snapshot))}\n\n"
        finally:
            unsubscribe()

    return StreamingResponse(events(), media_type="text/event-stream")


@router.get("", summary="List bookings for the caller's dashboard")
def list_bookings(
    view:         str     = Query("pending", pattern="^(pending|history|mine)$"),
    db:           Session = Depends(get_db),
    current_user: User    = Depends(get_current_user),
):
    return success_response("Bookings retrieved", booking_service.list_bookings(db, current_user, view))


@router.post("", status_code=status.HTTP_201_CREATED, summary="Submit a booking request")
def create_booking(
    body:             BookingCreateRequest,
    background_tasks: BackgroundTasks,
    db:               Session             = Depends(get_db),
    current_user:     User                = Depends(get_current_user),
    notifier:         NotificationService = Depends(get_notification_service),
):
    data = booking_service.create_booking(
        db, body, current_user, background_emitter(background_tasks, notifier),
    )
    return success_response("Booking request submitted successfully!", data)


@router.get("/{booking_id}", summary="Get booking detail")
def get_booking(
    booking_id:   str,
    db:           Session = Depends(get_db),
    current_user: User    = Depends(get_current_user),
):
    return success_response("Booking retrieved", booking_service.get_booking(db, booking_id, current_user))


@router.get("/{booking_id}/approval-log", summary="Stage decision history")
def get_approval_log(
    booking_id:   str,
    db:           Session = Depends(get_db),
    current_user: User    = Depends(get_current_user),
):
    booking_service.get_booking(db, booking_id, current_user)
    return success_response("Approval log retrieved", booking_service.get_approval_log(db, booking_id))


@router.post("/{booking_id}/stages/{stage}/decision", summary="Approve or reject one stage")
def decide_stage(
    booking_id:       str,
    body:             StageDecisionRequest,
    background_tasks: BackgroundTasks,
    stage:            int                 = Path(..., ge=1, le=3),
    db:               Session             = Depends(get_db),
    current_user:     User                = Depends(get_current_user),
    notifier:         NotificationService = Depends(get_notification_service),
):
    data = booking_service.decide_stage(
        db, booking_id, stage, body.decision, current_user,
        background_emitter(background_tasks, notifier),
    )
    return success_response(f"Stage {stage} {body.decision.value.lower()}", data)


@router.delete("/{booking_id}", summary="Cancel a pending booking (irreversible)")
def cancel_booking(
    booking_id:   str,
    db:           Session = Depends(get_db),
    current_user: User    = Depends(get_current_user),
):
    return success_response("Booking cancelled", booking_service.cancel_booking(db, booking_id, current_user))
