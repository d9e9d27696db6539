import logging
from typing import Iterable, Optional

from main import classify
from models.schema import AttendanceStatus, BulkVerification, ClassificationPolicy


def verify_bulk_status(records: Iterable[dict], proposed_status, policy: Optional[ClassificationPolicy] = None) -> BulkVerification:
    """Check a bulk status change against what the classifier would suggest.

    Each record is a dict with ``schedule``, ``shift_date``, ``actual_time_in``
    and ``actual_time_out``. Punch times are taken as stored; nothing is edited.
    """
    proposed_status = AttendanceStatus(proposed_status)
    consistent, inconsistent, suggestions = [], [], []

    logging.info(f"Running bulk verification for proposed status {proposed_status.value}")
    for index, record in enumerate(records):
        result = classify(
            record.get("schedule"),
            record.get("shift_date"),
            record.get("actual_time_in"),
            record.get("actual_time_out"),
            policy=policy,
        )
        suggestions.append(result)
        if result.status == proposed_status:
            consistent.append(index)
        else:
            inconsistent.append(index)
            logging.warning(
                f"Record {index} suggests {result.status.value}, not {proposed_status.value}: {result.reason}"
            )

    logging.info(f"Bulk verification completed: {len(consistent)} consistent, {len(inconsistent)} inconsistent")
    return BulkVerification(
        proposed_status=proposed_status,
        checked=len(suggestions),
        consistent=tuple(consistent),
        inconsistent=tuple(inconsistent),
        suggestions=tuple(suggestions),
    )
