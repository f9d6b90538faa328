from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from hall_reserve.database import get_db
from hall_reserve.dependencies import get_current_user
from hall_reserve.models.user import User
from hall_reserve.schemas.common import success_response
from hall_reserve.services.hall_service import hall_service

router = APIRouter(prefix="/halls")


@router.get("", summary="List halls")
def list_halls(
    search: Optional[str] = Query(None, description="Name contains (case-insensitive)"),
    floor:  Optional[str] = Query(None, description="e.g. 2nd | 3rd | All"),
    db:     Session       = Depends(get_db),
    _:      User          = Depends(get_current_user),
):
    return success_response("Halls retrieved", hall_service.list_halls(db, search, floor))


@router.get("/{hall_id}", summary="Get hall detail")
def get_hall(
    hall_id: str,
    db:      Session = Depends(get_db),
    _:       User    = Depends(get_current_user),
):
    return success_response("Hall retrieved", hall_service.get_hall_detail(db, hall_id))
