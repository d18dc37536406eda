"""Leave balance calculation.

Everything in this module works on an immutable ``BalanceInputs`` snapshot
built by ``vacaciones.balance_store``; nothing here touches the database or
the request context, so the same snapshot always yields the same result.

Rules:

* Entitlement is the group rule for the year prorated by the fraction of
  the year the employee was employed, rounded half up to whole days.
* Every calendar day of an approved absence that falls inside the year is
  consumed (weekends and holidays included) unless the leave type is listed
  in ``excluded_leave_types``.
* ``remaining = entitled + carry_over - consumed``. It is never clamped; a
  negative value means the employee is over-drawn.
* Overlapping approved requests are summed as they are, without
  deduplication.
"""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Iterable

from vacaciones.errors import DataAnomaly
from vacaciones.models import LeaveType


logger = logging.getLogger(__name__)

BALANCE_LEAVE_TYPES = (LeaveType.VACATION, LeaveType.PERSONAL_DAY)


@dataclass(frozen=True)
class EmployeeRecord:
    code: str
    hire_date: date
    termination_date: date | None
    group: str
    region: str | None = None


@dataclass(frozen=True)
class GroupPeriod:
    group: str
    effective_from: date
    effective_to: date | None = None

    def covers(self, day: date) -> bool:
        return self.effective_from <= day and (self.effective_to is None or self.effective_to >= day)


@dataclass(frozen=True)
class EntitlementRule:
    group: str
    year: int
    vacation_days: int
    personal_days: int


@dataclass(frozen=True)
class AbsenceRecord:
    record_id: str
    leave_type: LeaveType
    date_from: date
    date_to: date


@dataclass(frozen=True)
class BalanceInputs:
    employee: EmployeeRecord
    year: int
    rule: EntitlementRule
    carry_over: int = 0
    absences: tuple[AbsenceRecord, ...] = ()
    non_working_days: frozenset[date] = frozenset()
    excluded_leave_types: frozenset[LeaveType] = frozenset()


@dataclass(frozen=True)
class LeaveBalance:
    leave_type: LeaveType
    entitled: int
    carry_over: int
    consumed: int

    @property
    def remaining(self) -> int:
        return self.entitled + self.carry_over - self.consumed

    @property
    def overdrawn(self) -> bool:
        return self.remaining < 0


@dataclass(frozen=True)
class BalanceResult:
    employee_code: str
    year: int
    group: str
    vacation: LeaveBalance
    personal_days: LeaveBalance
    anomalies: tuple[DataAnomaly, ...] = field(default=())

    @property
    def vacation_entitled(self) -> int:
        return self.vacation.entitled

    @property
    def vacation_consumed(self) -> int:
        return self.vacation.consumed

    @property
    def vacation_remaining(self) -> int:
        return self.vacation.remaining

    @property
    def personal_days_entitled(self) -> int:
        return self.personal_days.entitled

    @property
    def personal_days_consumed(self) -> int:
        return self.personal_days.consumed

    @property
    def personal_days_remaining(self) -> int:
        return self.personal_days.remaining

    def as_dict(self) -> dict[str, Any]:
        return {
            "employee_code": self.employee_code,
            "year": self.year,
            "group": self.group,
            "vacation_entitled": self.vacation_entitled,
            "vacation_carry_over": self.vacation.carry_over,
            "vacation_consumed": self.vacation_consumed,
            "vacation_remaining": self.vacation_remaining,
            "vacation_overdrawn": self.vacation.overdrawn,
            "personal_days_entitled": self.personal_days_entitled,
            "personal_days_consumed": self.personal_days_consumed,
            "personal_days_remaining": self.personal_days_remaining,
            "personal_days_overdrawn": self.personal_days.overdrawn,
            "anomalies": [anomaly.as_dict() for anomaly in self.anomalies],
        }


def days_in_year(year: int) -> int:
    return 366 if calendar.isleap(year) else 365


def year_bounds(year: int) -> tuple[date, date]:
    return date(year, 1, 1), date(year, 12, 31)


def employment_window(employee: EmployeeRecord, year: int) -> tuple[date, date] | None:
    """Days of ``year`` during which the employee was under contract, or None."""
    year_start, year_end = year_bounds(year)
    window_start = max(employee.hire_date, year_start)
    window_end = year_end
    if employee.termination_date is not None:
        window_end = min(employee.termination_date, year_end)
    if window_end < window_start:
        return None
    return window_start, window_end


def employed_days(employee: EmployeeRecord, year: int) -> int:
    window = employment_window(employee, year)
    if window is None:
        return 0
    return (window[1] - window[0]).days + 1


def prorate(annual_days: int, worked_days: int, total_days: int) -> int:
    """Round half up ``annual_days * worked_days / total_days`` to whole days."""
    if annual_days <= 0 or worked_days <= 0:
        return 0
    if worked_days >= total_days:
        return annual_days
    numerator = annual_days * worked_days
    return (2 * numerator + total_days) // (2 * total_days)


def group_as_of_year(
    employee: EmployeeRecord,
    periods: Iterable[GroupPeriod],
    year: int,
) -> str:
    """Group in force on the last employed day of ``year``.

    Falls back to the employee's default group when no period covers that day.
    """
    window = employment_window(employee, year)
    reference_day = window[1] if window is not None else year_bounds(year)[1]
    matching = [period for period in periods if period.covers(reference_day)]
    if not matching:
        return employee.group
    return max(matching, key=lambda period: period.effective_from).group


def consumed_days_in_range(
    absence: AbsenceRecord,
    range_start: date,
    range_end: date,
    skipped_days: frozenset[date] = frozenset(),
) -> int:
    clipped_from = max(absence.date_from, range_start)
    clipped_to = min(absence.date_to, range_end)
    if clipped_to < clipped_from:
        return 0

    total = (clipped_to - clipped_from).days + 1
    if not skipped_days:
        return total

    current = clipped_from
    while current <= clipped_to:
        if current in skipped_days:
            total -= 1
        current += timedelta(days=1)
    return total


def calculate_balance(inputs: BalanceInputs) -> BalanceResult:
    employee = inputs.employee
    year = inputs.year
    year_start, year_end = year_bounds(year)

    worked_days = employed_days(employee, year)
    total_days = days_in_year(year)
    entitled = {
        LeaveType.VACATION: prorate(inputs.rule.vacation_days, worked_days, total_days),
        LeaveType.PERSONAL_DAY: prorate(inputs.rule.personal_days, worked_days, total_days),
    }

    consumed = {leave_type: 0 for leave_type in BALANCE_LEAVE_TYPES}
    anomalies: list[DataAnomaly] = []
    for absence in inputs.absences:
        if absence.leave_type not in consumed:
            continue
        if absence.date_to < absence.date_from:
            anomaly = DataAnomaly(
                record_id=absence.record_id,
                reason=(
                    f"end date {absence.date_to.isoformat()} is before "
                    f"start date {absence.date_from.isoformat()}"
                ),
            )
            logger.warning(
                "Skipping malformed absence %s for employee %s: %s",
                absence.record_id,
                employee.code,
                anomaly.reason,
            )
            anomalies.append(anomaly)
            continue

        skipped_days = inputs.non_working_days if absence.leave_type in inputs.excluded_leave_types else frozenset()
        consumed[absence.leave_type] += consumed_days_in_range(absence, year_start, year_end, skipped_days)

    return BalanceResult(
        employee_code=employee.code,
        year=year,
        group=inputs.rule.group,
        vacation=LeaveBalance(
            leave_type=LeaveType.VACATION,
            entitled=entitled[LeaveType.VACATION],
            carry_over=inputs.carry_over,
            consumed=consumed[LeaveType.VACATION],
        ),
        personal_days=LeaveBalance(
            leave_type=LeaveType.PERSONAL_DAY,
            entitled=entitled[LeaveType.PERSONAL_DAY],
            carry_over=0,
            consumed=consumed[LeaveType.PERSONAL_DAY],
        ),
        anomalies=tuple(anomalies),
    )
