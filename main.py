import logging
from datetime import datetime, date, timedelta
from typing import Optional, Tuple, Union

from models.schema import (
    GRACE_PERIOD_MINUTES,
    OVERTIME_THRESHOLD_MINUTES,
    UNDERTIME_HOUR_THRESHOLD_MINUTES,
    ArrivalKind,
    ArrivalVerdict,
    AttendanceStatus,
    ClassificationPolicy,
    ClassificationResult,
    DepartureKind,
    DepartureVerdict,
    PunchPair,
    ShiftSchedule,
    ShiftType,
    WorkSummary,
)
from utils.helper import describe_shift_date, floor_minutes, same_clock

LUNCH_DEDUCTION_MINUTES = 60
LUNCH_DEDUCTION_AFTER_MINUTES = 5 * 60

# Thresholds live on ClassificationPolicy; this is the instance every caller shares.
DEFAULT_POLICY = ClassificationPolicy()

POINT_VALUES = {
    AttendanceStatus.NO_CALL_NO_SHOW: 1.00,
    AttendanceStatus.HALF_DAY_ABSENCE: 0.50,
    AttendanceStatus.UNDERTIME_MORE_THAN_HOUR: 0.50,
    AttendanceStatus.UNDERTIME: 0.25,
    AttendanceStatus.TARDY: 0.25,
    AttendanceStatus.FAILED_BIO_IN: 0.25,
    AttendanceStatus.FAILED_BIO_OUT: 0.25,
}

ScheduleInput = Union[ShiftSchedule, dict, None]


def _as_schedule(schedule: ScheduleInput) -> Optional[ShiftSchedule]:
    if schedule is None or isinstance(schedule, ShiftSchedule):
        return schedule
    return ShiftSchedule.model_validate(schedule)


def is_overnight(schedule: ShiftSchedule) -> bool:
    # Compares clock positions, not durations: 09:00-09:00 rolls over too.
    start = schedule.scheduled_time_in
    end = schedule.scheduled_time_out
    return schedule.shift_type == ShiftType.NIGHT or (end.hour, end.minute) <= (start.hour, start.minute)


def anchor_schedule(schedule: ShiftSchedule, shift_date: date) -> Tuple[datetime, datetime]:
    scheduled_start = datetime.combine(shift_date, schedule.scheduled_time_in)
    scheduled_end = datetime.combine(shift_date, schedule.scheduled_time_out)
    if is_overnight(schedule):
        scheduled_end += timedelta(days=1)
    return scheduled_start, scheduled_end


def evaluate_arrival(actual_time_in: Optional[datetime], scheduled_start: datetime,
                     grace_period_minutes: int) -> ArrivalVerdict:
    if actual_time_in is None:
        return ArrivalVerdict(kind=ArrivalKind.NO_DATA)

    diff_minutes = floor_minutes(actual_time_in, same_clock(scheduled_start, actual_time_in))
    if diff_minutes > grace_period_minutes:
        return ArrivalVerdict(kind=ArrivalKind.HALF_DAY, minutes=diff_minutes)
    if diff_minutes >= 1:
        return ArrivalVerdict(kind=ArrivalKind.TARDY, minutes=diff_minutes)
    return ArrivalVerdict(kind=ArrivalKind.ON_TIME)


def evaluate_departure(actual_time_out: Optional[datetime], scheduled_end: datetime,
                       policy: ClassificationPolicy = DEFAULT_POLICY) -> DepartureVerdict:
    if actual_time_out is None:
        return DepartureVerdict(kind=DepartureKind.NO_DATA)

    diff_minutes = floor_minutes(actual_time_out, same_clock(scheduled_end, actual_time_out))
    if diff_minutes < -policy.undertime_hour_threshold_minutes:
        return DepartureVerdict(kind=DepartureKind.UNDERTIME_MORE_THAN_HOUR, minutes=abs(diff_minutes))
    if diff_minutes < 0:
        return DepartureVerdict(kind=DepartureKind.UNDERTIME, minutes=abs(diff_minutes))
    if diff_minutes > policy.overtime_threshold_minutes:
        return DepartureVerdict(kind=DepartureKind.OVERTIME, minutes=diff_minutes)
    return DepartureVerdict(kind=DepartureKind.NONE)


def _undertime_status(departure: DepartureVerdict) -> Optional[AttendanceStatus]:
    if departure.kind == DepartureKind.UNDERTIME_MORE_THAN_HOUR:
        return AttendanceStatus.UNDERTIME_MORE_THAN_HOUR
    if departure.kind == DepartureKind.UNDERTIME:
        return AttendanceStatus.UNDERTIME
    return None


def _compose(arrival: ArrivalVerdict, departure: DepartureVerdict, grace: int,
             hour_threshold: int) -> dict:
    tardy = arrival.minutes
    short = departure.minutes
    undertime = _undertime_status(departure)
    half_day = arrival.kind == ArrivalKind.HALF_DAY
    is_tardy = arrival.kind == ArrivalKind.TARDY

    if departure.kind == DepartureKind.NO_DATA:
        if half_day:
            return {
                "status": AttendanceStatus.HALF_DAY_ABSENCE,
                "secondary_status": AttendanceStatus.FAILED_BIO_OUT,
                "reason": f"Arrived {tardy} minutes late (more than {grace}min grace period), missing time out",
            }
        if is_tardy:
            return {
                "status": AttendanceStatus.TARDY,
                "secondary_status": AttendanceStatus.FAILED_BIO_OUT,
                "reason": f"Arrived {tardy} minutes late, missing time out",
            }
        return {"status": AttendanceStatus.FAILED_BIO_OUT, "reason": "Missing time out record"}

    if half_day and undertime:
        return {
            "status": AttendanceStatus.HALF_DAY_ABSENCE,
            "secondary_status": undertime,
            "reason": f"Arrived {tardy} minutes late AND left {short} minutes early",
        }
    if half_day:
        return {
            "status": AttendanceStatus.HALF_DAY_ABSENCE,
            "reason": f"Arrived {tardy} minutes late (more than {grace}min grace period)",
        }
    # Higher point value is primary; arrival wins ties.
    if is_tardy and undertime == AttendanceStatus.UNDERTIME_MORE_THAN_HOUR:
        return {
            "status": undertime,
            "secondary_status": AttendanceStatus.TARDY,
            "reason": f"Left {short} minutes early AND arrived {tardy} minutes late",
        }
    if is_tardy and undertime:
        return {
            "status": AttendanceStatus.TARDY,
            "secondary_status": undertime,
            "reason": f"Arrived {tardy} minutes late AND left {short} minutes early",
        }
    if is_tardy:
        return {"status": AttendanceStatus.TARDY, "reason": f"Arrived {tardy} minutes late"}
    if undertime == AttendanceStatus.UNDERTIME_MORE_THAN_HOUR:
        return {
            "status": undertime,
            "reason": f"Left {short} minutes early (more than {hour_threshold} minutes)",
        }
    if undertime:
        return {"status": undertime, "reason": f"Left {short} minutes early"}
    return {"status": AttendanceStatus.ON_TIME, "reason": "Arrived on time"}


def classify(schedule: ScheduleInput, shift_date: date, actual_time_in: Optional[datetime],
             actual_time_out: Optional[datetime],
             policy: Optional[ClassificationPolicy] = None) -> ClassificationResult:
    """Suggest the attendance status for one shift.

    Missing punches and a missing schedule are ordinary outcomes. Invalid
    input (no shift date, malformed or out-of-range times, naive and aware
    punches mixed) raises pydantic.ValidationError before anything is computed.
    """
    policy = policy or DEFAULT_POLICY
    punches = PunchPair(shift_date=shift_date, actual_time_in=actual_time_in,
                        actual_time_out=actual_time_out)
    schedule = _as_schedule(schedule)

    time_in = punches.actual_time_in
    time_out = same_clock(punches.actual_time_out, time_in)
    has_in = time_in is not None
    has_out = time_out is not None
    is_partial = not (has_in and has_out)

    if not has_in and not has_out:
        result = ClassificationResult(
            status=AttendanceStatus.NO_CALL_NO_SHOW,
            reason="No time in or time out recorded",
            violations=(AttendanceStatus.NO_CALL_NO_SHOW,),
            is_partial=True,
        )
    elif not has_in:
        logging.warning(f"Time out recorded without time in for shift date {describe_shift_date(punches.shift_date)}")
        result = ClassificationResult(
            status=AttendanceStatus.FAILED_BIO_IN,
            reason="Missing time in record",
            violations=(AttendanceStatus.FAILED_BIO_IN,),
            is_partial=True,
        )
    elif schedule is None and not has_out:
        result = ClassificationResult(
            status=AttendanceStatus.FAILED_BIO_OUT,
            reason="Missing time out record (no schedule assigned)",
            violations=(AttendanceStatus.FAILED_BIO_OUT,),
            is_partial=True,
        )
    elif schedule is None:
        # Permissive fallback kept for compatibility; timing cannot be judged without a schedule.
        result = ClassificationResult(
            status=AttendanceStatus.ON_TIME,
            reason="No schedule assigned, timing not evaluated",
        )
    else:
        grace = schedule.grace_period_minutes
        if grace is None:
            grace = policy.default_grace_period_minutes
        scheduled_start, scheduled_end = anchor_schedule(schedule, punches.shift_date)
        arrival = evaluate_arrival(time_in, scheduled_start, grace)
        departure = evaluate_departure(time_out, scheduled_end, policy)

        violations = []
        if arrival.kind == ArrivalKind.HALF_DAY:
            violations.append(AttendanceStatus.HALF_DAY_ABSENCE)
        elif arrival.kind == ArrivalKind.TARDY:
            violations.append(AttendanceStatus.TARDY)
        undertime = _undertime_status(departure)
        if undertime:
            violations.append(undertime)
        if not has_out:
            violations.append(AttendanceStatus.FAILED_BIO_OUT)

        composed = _compose(arrival, departure, grace, policy.undertime_hour_threshold_minutes)
        if departure.kind == DepartureKind.OVERTIME:
            composed["reason"] += f", left {departure.minutes} minutes after scheduled time out"

        result = ClassificationResult(
            tardy_minutes=arrival.minutes,
            undertime_minutes=departure.minutes if undertime else None,
            overtime_minutes=departure.minutes if departure.kind == DepartureKind.OVERTIME else None,
            violations=tuple(violations),
            is_partial=is_partial,
            **composed,
        )

    logging.debug(f"Classified shift {describe_shift_date(punches.shift_date)} as {result.status.value}: {result.reason}")
    return result


def determine_shift_period(schedule: ScheduleInput) -> str:
    schedule = _as_schedule(schedule)
    if schedule is None:
        return "unknown"

    hour = schedule.scheduled_time_in.hour
    if 5 <= hour < 12:
        return "morning"
    elif 12 <= hour < 18:
        return "afternoon"
    elif 18 <= hour < 22:
        return "evening"
    elif hour >= 22:
        return "night"
    return "graveyard"


def get_point_value(status: Optional[Union[AttendanceStatus, str]]) -> float:
    if status is None:
        return 0.0
    try:
        return POINT_VALUES.get(AttendanceStatus(status), 0.0)
    except ValueError:
        logging.warning(f"Unknown attendance status for point lookup: {status}")
        return 0.0


def _lunch_deduction(raw_minutes: int, lunch_used: bool) -> int:
    if lunch_used or raw_minutes <= LUNCH_DEDUCTION_AFTER_MINUTES:
        return 0
    return LUNCH_DEDUCTION_MINUTES


def calculate_work_minutes(schedule: ScheduleInput, punches: PunchPair, overtime_approved: bool = False,
                           policy: Optional[ClassificationPolicy] = None,
                           lunch_used: bool = False) -> Optional[WorkSummary]:
    """Minutes worked on a shift, or None when either punch is missing.

    Early arrivals do not count, unapproved overtime is capped at the scheduled
    end, and a lunch hour is deducted from spans longer than five hours unless
    the employee worked through lunch (``lunch_used``). Without a schedule the
    raw span between the punches is used.
    """
    policy = policy or DEFAULT_POLICY
    schedule = _as_schedule(schedule)
    time_in = punches.actual_time_in
    time_out = same_clock(punches.actual_time_out, time_in)
    if time_in is None or time_out is None:
        return None

    if schedule is None:
        raw_minutes = max(floor_minutes(time_out, time_in), 0)
        lunch = _lunch_deduction(raw_minutes, lunch_used)
        return WorkSummary(work_minutes=raw_minutes - lunch, lunch_deduction_minutes=lunch)

    scheduled_start, scheduled_end = anchor_schedule(schedule, punches.shift_date)
    scheduled_start = same_clock(scheduled_start, time_in)
    scheduled_end = same_clock(scheduled_end, time_in)

    effective_in = max(time_in, scheduled_start)
    effective_out = time_out
    departure = evaluate_departure(time_out, scheduled_end, policy)
    overtime = departure.kind == DepartureKind.OVERTIME
    if overtime and not overtime_approved and time_out > scheduled_end:
        effective_out = scheduled_end

    raw_minutes = max(floor_minutes(effective_out, effective_in), 0)
    lunch = _lunch_deduction(raw_minutes, lunch_used)
    return WorkSummary(
        work_minutes=raw_minutes - lunch,
        lunch_deduction_minutes=lunch,
        overtime_counted=overtime and overtime_approved,
    )
