"""
Report -- validated, scoped filter for request exports.

Responsibility:
    Turns ``(from_date, to_date, department_id, scope)`` into a
    ReportFilter that the request selector executes.  All validation
    happens here, before any session is opened.

Invariants enforced:
    - Both dates are well-formed calendar dates and from_date <= to_date.
    - An explicit department must be inside the caller's scope.
    - The range covers the whole of to_date: [from 00:00, to + 1 day).
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo

from registrar_kernel.domain.lifecycle import RequestStatus, parse_status
from registrar_kernel.domain.scope import DepartmentScope
from registrar_kernel.exceptions import InvalidRangeError

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True)
class ReportFilter:
    from_date: date
    to_date: date
    start: datetime
    end: datetime
    scope: DepartmentScope
    department_id: int | None = None
    status: RequestStatus | None = None


def _parse_date(value: date | str, from_raw: object, to_raw: object) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and _ISO_DATE.match(value.strip()):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            pass
    raise InvalidRangeError(
        str(from_raw), str(to_raw), f"{value!r} is not a YYYY-MM-DD date"
    )


def parse_range(from_date: date | str, to_date: date | str) -> tuple[date, date]:
    """
    Parse and order-check a report range.

    Raises:
        InvalidRangeError: Malformed dates or from_date after to_date.
    """
    start_day = _parse_date(from_date, from_date, to_date)
    end_day = _parse_date(to_date, from_date, to_date)
    if start_day > end_day:
        raise InvalidRangeError(
            start_day.isoformat(), end_day.isoformat(), "from_date is after to_date"
        )
    return start_day, end_day


def build_report_filter(
    from_date: date | str,
    to_date: date | str,
    scope: DepartmentScope,
    department_id: int | None = None,
    status: RequestStatus | str | None = None,
    user_id: int | None = None,
    tz: tzinfo = timezone.utc,
) -> ReportFilter:
    """
    Build a report filter.

    Args:
        from_date, to_date: Inclusive calendar dates.
        scope: The caller's resolved department scope.
        department_id: Optional explicit department.
        status: Optional request-status filter.
        user_id: Caller id, carried into ForbiddenError.
        tz: Zone in which the calendar dates are interpreted.

    Raises:
        InvalidRangeError: Malformed or inverted dates.
        ForbiddenError: department_id outside scope.
    """
    start_day, end_day = parse_range(from_date, to_date)

    effective = scope.restrict(department_id, user_id=user_id)
    return ReportFilter(
        from_date=start_day,
        to_date=end_day,
        start=datetime.combine(start_day, time.min, tzinfo=tz),
        end=datetime.combine(end_day + timedelta(days=1), time.min, tzinfo=tz),
        scope=effective,
        department_id=department_id,
        status=parse_status(status) if status is not None else None,
    )
