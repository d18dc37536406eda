from __future__ import annotations

import logging
from datetime import date

import pytest

from vacaciones.balance import (
    AbsenceRecord,
    BalanceInputs,
    EmployeeRecord,
    EntitlementRule,
    GroupPeriod,
    calculate_balance,
    consumed_days_in_range,
    employed_days,
    group_as_of_year,
    prorate,
)
from vacaciones.models import LeaveType


def _employee(
    hire_date: date = date(2020, 1, 1),
    termination_date: date | None = None,
    group: str = "General",
) -> EmployeeRecord:
    return EmployeeRecord(code="E001", hire_date=hire_date, termination_date=termination_date, group=group)


def _rule(year: int, vacation_days: int = 22, personal_days: int = 3) -> EntitlementRule:
    return EntitlementRule(group="General", year=year, vacation_days=vacation_days, personal_days=personal_days)


def _absence(
    record_id: str,
    date_from: date,
    date_to: date,
    leave_type: LeaveType = LeaveType.VACATION,
) -> AbsenceRecord:
    return AbsenceRecord(record_id=record_id, leave_type=leave_type, date_from=date_from, date_to=date_to)


def _inputs(year: int, **overrides) -> BalanceInputs:
    values = {"employee": _employee(), "year": year, "rule": _rule(year)}
    values.update(overrides)
    return BalanceInputs(**values)


def test_full_year_employee_without_absences_keeps_whole_entitlement():
    result = calculate_balance(_inputs(2025))

    assert result.vacation_entitled == 22
    assert result.vacation_consumed == 0
    assert result.vacation_remaining == 22
    assert result.personal_days_entitled == 3
    assert result.personal_days_remaining == 3
    assert result.anomalies == ()


def test_hired_on_first_and_terminated_on_last_day_of_year_is_not_prorated():
    employee = _employee(hire_date=date(2025, 1, 1), termination_date=date(2025, 12, 31))

    result = calculate_balance(_inputs(2025, employee=employee))

    assert employed_days(employee, 2025) == 365
    assert result.vacation_entitled == 22
    assert result.vacation_remaining == 22
    assert result.personal_days_entitled == 3
    assert result.personal_days_remaining == 3


def test_mid_year_hire_prorates_by_employed_days():
    result = calculate_balance(_inputs(2025, employee=_employee(hire_date=date(2025, 7, 2))))

    assert employed_days(_employee(hire_date=date(2025, 7, 2)), 2025) == 183
    # 22 * 183 / 365 = 11.03
    assert result.vacation_entitled == 11
    # 3 * 183 / 365 = 1.50
    assert result.personal_days_entitled == 2


def test_mid_year_hire_in_leap_year_uses_366_days():
    employee = _employee(hire_date=date(2024, 7, 2))

    assert employed_days(employee, 2024) == 183
    assert calculate_balance(_inputs(2024, employee=employee)).vacation_entitled == 11


def test_termination_inside_year_prorates_until_last_contract_day():
    employee = _employee(termination_date=date(2025, 6, 30))

    assert employed_days(employee, 2025) == 181
    assert calculate_balance(_inputs(2025, employee=employee)).vacation_entitled == 11


def test_employee_outside_year_gets_nothing():
    result = calculate_balance(_inputs(2025, employee=_employee(hire_date=date(2026, 3, 1))))

    assert result.vacation_entitled == 0
    assert result.personal_days_entitled == 0


@pytest.mark.parametrize(
    ("annual", "worked", "total", "expected"),
    [
        (22, 365, 365, 22),
        (22, 400, 365, 22),
        (22, 0, 365, 0),
        (0, 200, 365, 0),
        (3, 1, 2, 2),
        (1, 1, 2, 1),
        (22, 182, 365, 11),
    ],
)
def test_prorate_rounds_half_up(annual, worked, total, expected):
    assert prorate(annual, worked, total) == expected


def test_non_overlapping_requests_are_summed():
    absences = (
        _absence("a1", date(2025, 3, 3), date(2025, 3, 7)),
        _absence("a2", date(2025, 6, 2), date(2025, 6, 6)),
    )

    result = calculate_balance(_inputs(2025, absences=absences))

    assert result.vacation_consumed == 10
    assert result.vacation_remaining == 12


def test_overlapping_requests_are_both_counted():
    absences = (
        _absence("a1", date(2025, 3, 3), date(2025, 3, 7)),
        _absence("a2", date(2025, 3, 5), date(2025, 3, 9)),
    )

    assert calculate_balance(_inputs(2025, absences=absences)).vacation_consumed == 10


def test_request_across_new_year_is_split_between_years():
    absence = _absence("a1", date(2024, 12, 28), date(2025, 1, 3))

    assert calculate_balance(_inputs(2024, absences=(absence,))).vacation_consumed == 4
    assert calculate_balance(_inputs(2025, absences=(absence,))).vacation_consumed == 3


def test_carry_over_adds_to_vacation_and_remaining_can_go_negative():
    absences = (_absence("a1", date(2025, 2, 1), date(2025, 3, 2)),)

    result = calculate_balance(_inputs(2025, carry_over=5, absences=absences))

    assert result.vacation_consumed == 30
    assert result.vacation_remaining == 22 + 5 - 30
    assert result.vacation.overdrawn is True
    assert result.personal_days.carry_over == 0


def test_malformed_absence_is_reported_and_consumes_nothing(caplog):
    absences = (
        _absence("bad", date(2025, 5, 10), date(2025, 5, 1)),
        _absence("ok", date(2025, 5, 12), date(2025, 5, 13)),
    )

    with caplog.at_level(logging.WARNING, logger="vacaciones.balance"):
        result = calculate_balance(_inputs(2025, absences=absences))

    assert result.vacation_consumed == 2
    assert [anomaly.record_id for anomaly in result.anomalies] == ["bad"]
    assert "before start date" in result.anomalies[0].reason
    assert "Skipping malformed absence bad" in caplog.text


def test_reference_example_for_2024():
    absences = (_absence("a1", date(2024, 8, 1), date(2024, 8, 14)),)

    result = calculate_balance(_inputs(2024, carry_over=2, absences=absences))

    assert (result.vacation_entitled, result.vacation_consumed, result.vacation_remaining) == (22, 14, 10)
    assert (result.personal_days_entitled, result.personal_days_consumed, result.personal_days_remaining) == (3, 0, 3)


def test_personal_days_and_other_leave_are_counted_separately():
    absences = (
        _absence("p1", date(2025, 4, 14), date(2025, 4, 14), LeaveType.PERSONAL_DAY),
        _absence("o1", date(2025, 4, 15), date(2025, 4, 20), LeaveType.OTHER),
    )

    result = calculate_balance(_inputs(2025, absences=absences))

    assert result.vacation_consumed == 0
    assert result.personal_days_consumed == 1
    assert result.personal_days_remaining == 2


def test_excluded_leave_types_skip_non_working_days():
    # Monday 2025-03-03 to Sunday 2025-03-09
    absence = _absence("a1", date(2025, 3, 3), date(2025, 3, 9))
    weekend = frozenset({date(2025, 3, 8), date(2025, 3, 9)})

    counted = calculate_balance(_inputs(2025, absences=(absence,), non_working_days=weekend))
    skipped = calculate_balance(
        _inputs(
            2025,
            absences=(absence,),
            non_working_days=weekend,
            excluded_leave_types=frozenset({LeaveType.VACATION}),
        )
    )

    assert counted.vacation_consumed == 7
    assert skipped.vacation_consumed == 5


def test_consumed_days_in_range_clips_to_range():
    absence = _absence("a1", date(2025, 1, 20), date(2025, 2, 10))

    assert consumed_days_in_range(absence, date(2025, 2, 1), date(2025, 2, 28)) == 10
    assert consumed_days_in_range(absence, date(2025, 3, 1), date(2025, 3, 31)) == 0


def test_group_as_of_year_uses_period_covering_last_employed_day():
    periods = (
        GroupPeriod(group="General", effective_from=date(2020, 1, 1), effective_to=date(2025, 6, 30)),
        GroupPeriod(group="Reducida", effective_from=date(2025, 7, 1)),
    )

    assert group_as_of_year(_employee(), periods, 2025) == "Reducida"
    assert group_as_of_year(_employee(), periods, 2024) == "General"
    assert group_as_of_year(_employee(termination_date=date(2025, 5, 31)), periods, 2025) == "General"
    assert group_as_of_year(_employee(group="Fallback"), (), 2025) == "Fallback"


def test_same_inputs_give_same_result():
    inputs = _inputs(2025, carry_over=1, absences=(_absence("a1", date(2025, 8, 4), date(2025, 8, 8)),))

    assert calculate_balance(inputs) == calculate_balance(inputs)


def test_as_dict_exposes_flat_balance_fields():
    payload = calculate_balance(_inputs(2024, carry_over=2)).as_dict()

    assert payload["employee_code"] == "E001"
    assert payload["year"] == 2024
    assert payload["group"] == "General"
    assert payload["vacation_entitled"] == 22
    assert payload["vacation_carry_over"] == 2
    assert payload["vacation_remaining"] == 24
    assert payload["vacation_overdrawn"] is False
    assert payload["personal_days_remaining"] == 3
    assert payload["anomalies"] == []
