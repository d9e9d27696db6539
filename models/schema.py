from datetime import datetime, time, date
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, Field, field_validator, model_validator

from utils.helper import parse_clock_time

GRACE_PERIOD_MINUTES = 15
OVERTIME_THRESHOLD_MINUTES = 30
UNDERTIME_HOUR_THRESHOLD_MINUTES = 60


class ShiftType(str, Enum):
    MORNING = "morning_shift"
    AFTERNOON = "afternoon_shift"
    EVENING = "evening_shift"
    NIGHT = "night_shift"
    GRAVEYARD = "graveyard_shift"
    UTILITY_24H = "utility_24h"
    UNSPECIFIED = "unspecified"


class AttendanceStatus(str, Enum):
    ON_TIME = "on_time"
    TARDY = "tardy"
    HALF_DAY_ABSENCE = "half_day_absence"
    UNDERTIME = "undertime"
    UNDERTIME_MORE_THAN_HOUR = "undertime_more_than_hour"
    FAILED_BIO_IN = "failed_bio_in"
    FAILED_BIO_OUT = "failed_bio_out"
    NO_CALL_NO_SHOW = "no_call_no_show"


class ArrivalKind(str, Enum):
    NO_DATA = "no_data"
    ON_TIME = "on_time"
    TARDY = "tardy"
    HALF_DAY = "half_day"


class DepartureKind(str, Enum):
    NO_DATA = "no_data"
    NONE = "none"
    UNDERTIME = "undertime"
    UNDERTIME_MORE_THAN_HOUR = "undertime_more_than_hour"
    OVERTIME = "overtime"


class ClassificationPolicy(BaseModel):
    """Thresholds shared by every caller of the classifier."""

    model_config = {"frozen": True}

    default_grace_period_minutes: int = Field(default=GRACE_PERIOD_MINUTES, ge=0)
    overtime_threshold_minutes: int = Field(default=OVERTIME_THRESHOLD_MINUTES, ge=0)
    undertime_hour_threshold_minutes: int = Field(default=UNDERTIME_HOUR_THRESHOLD_MINUTES, ge=0)


class ShiftSchedule(BaseModel):
    model_config = {"frozen": True}

    shift_type: ShiftType = ShiftType.UNSPECIFIED
    scheduled_time_in: time
    scheduled_time_out: time
    # None falls back to ClassificationPolicy.default_grace_period_minutes
    grace_period_minutes: Optional[int] = Field(default=None, ge=0)
    site_id: Optional[str] = None
    campaign_id: Optional[str] = None

    @field_validator("scheduled_time_in", "scheduled_time_out", mode="before")
    @classmethod
    def _parse_wall_clock(cls, value):
        return parse_clock_time(value)


class PunchPair(BaseModel):
    model_config = {"frozen": True}

    shift_date: date
    actual_time_in: Optional[datetime] = None
    actual_time_out: Optional[datetime] = None

    @field_validator("shift_date", mode="before")
    @classmethod
    def _reject_datetime(cls, value):
        if isinstance(value, datetime):
            raise ValueError("shift_date must be a calendar date, not a timestamp")
        return value

    @model_validator(mode="after")
    def _single_clock_convention(self):
        punches = [p for p in (self.actual_time_in, self.actual_time_out) if p is not None]
        aware = {p.tzinfo is not None and p.utcoffset() is not None for p in punches}
        if len(aware) > 1:
            raise ValueError("actual_time_in and actual_time_out mix naive and timezone-aware values")
        return self


class ArrivalVerdict(BaseModel):
    model_config = {"frozen": True}

    kind: ArrivalKind
    minutes: Optional[int] = None


class DepartureVerdict(BaseModel):
    model_config = {"frozen": True}

    kind: DepartureKind
    minutes: Optional[int] = None


class ClassificationResult(BaseModel):
    model_config = {"frozen": True}

    status: AttendanceStatus
    secondary_status: Optional[AttendanceStatus] = None
    tardy_minutes: Optional[int] = Field(default=None, ge=0)
    undertime_minutes: Optional[int] = Field(default=None, ge=0)
    overtime_minutes: Optional[int] = Field(default=None, ge=0)
    reason: str
    violations: Tuple[AttendanceStatus, ...] = ()
    is_partial: bool = False


class WorkSummary(BaseModel):
    work_minutes: int
    lunch_deduction_minutes: int = 0
    overtime_counted: bool = False


class BulkVerification(BaseModel):
    proposed_status: AttendanceStatus
    checked: int
    consistent: Tuple[int, ...] = ()
    inconsistent: Tuple[int, ...] = ()
    suggestions: Tuple[ClassificationResult, ...] = ()

    @property
    def is_consistent(self) -> bool:
        return not self.inconsistent
