from datetime import date, time
from typing import Optional

from pydantic import BaseModel, field_validator

from hall_reserve.models.booking import AirConditioning, ApprovalStatus, Duration


class BookingCreateRequest(BaseModel):
    """
    Booking form as submitted by staff.

    Required text fields default to empty so missing values come back as
    per-field messages from the workflow rather than schema errors.
    """
    hallId:            str
    department:        str = ""
    meetingType:       str = ""
    requiredDate:      Optional[date] = None
    startTime:         Optional[time] = None
    duration:          Optional[Duration] = None
    audioSystem:       bool = False
    projector:         bool = False
    airConditioning:   AirConditioning = AirConditioning.REQUIRED
    participants:      Optional[int] = None
    coordinatorName:   str = ""
    bookedBy:          str = ""
    otherRequirements: str = ""
    agreementAccepted: bool = False

    @field_validator("otherRequirements")
    @classmethod
    def strip_requirements(cls, v):
        return v.strip()


class StageDecisionRequest(BaseModel):
    decision: ApprovalStatus

    @field_validator("decision")
    @classmethod
    def check_decision(cls, v):
        if v == ApprovalStatus.PENDING:
            raise ValueError("Decision must be Approved or Rejected")
        return v
