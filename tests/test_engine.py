import logging
import math
import random
from datetime import date, datetime

import pytest

from hr_finsight.engine import (
    aggregate,
    client_summaries,
    engagement_figures,
    engagements_to_dataframe,
    result_to_dataframe,
)
from hr_finsight.exceptions import (
    InvalidCommissionError,
    InvalidEngagementError,
    InvalidRateError,
    UnsupportedCommissionTypeError,
)
from hr_finsight.models import (
    KIND_PLACEMENT,
    KIND_TIMESHEET,
    Allocation,
    AttendanceEntry,
    BillingRecord,
    CompensationRecord,
    Engagement,
    FeeSpec,
    Figures,
    Schedule,
)
from hr_finsight.periods import Window

RATES = {"USD": 84}
MARCH = Window(start=date(2025, 3, 1), end=date(2025, 3, 31), label="2025-03")


def _timesheet(subject, project, client, billing_amount=100, billing_currency="USD",
               billing_period="Hourly", comp=1_200_000, comp_currency="INR",
               comp_period="LPA", **kwargs) -> Engagement:
    return Engagement(
        subject_id=subject,
        cost_object_id=project,
        client_id=client,
        kind=KIND_TIMESHEET,
        compensation=CompensationRecord(subject, comp, comp_currency, comp_period),
        billing=BillingRecord(
            project, client, billing_amount, billing_currency, billing_period
        ),
        **kwargs,
    )


def _log(subject, day, approved=True, **hours_by_project) -> AttendanceEntry:
    return AttendanceEntry(
        subject_id=subject,
        date=day,
        approved=approved,
        allocations=tuple(
            Allocation(cost_object_id=p, hours=h) for p, h in hours_by_project.items()
        ),
    )


def test_timesheet_engagement_revenue_cost_profit() -> None:
    """10 approved hours billed 100 USD/h, paid 1.2M INR per annum."""
    engagement = _timesheet("E1", "P1", "C1")
    entries = [_log("E1", date(2025, 3, 3), P1=6), _log("E1", date(2025, 3, 4), P1=4)]

    result = aggregate([engagement], entries, MARCH, "INR", RATES)

    total = result.total
    assert total.hours == pytest.approx(10)
    assert total.revenue == pytest.approx(84_000)
    assert total.cost == pytest.approx(4_109.59, abs=0.01)
    assert total.profit == pytest.approx(79_890.41, abs=0.01)
    assert total.profit == pytest.approx(total.revenue - total.cost)


def test_engagement_figures_expose_hourly_rates() -> None:
    ef = engagement_figures(
        _timesheet("E1", "P1", "C1"),
        (_log("E1", date(2025, 3, 3), P1=1),),
        MARCH,
        "INR",
        RATES,
        Schedule(),
    )
    assert ef.hourly_billing_rate == pytest.approx(8_400)
    assert ef.hourly_compensation_rate == pytest.approx(1_200_000 / 2920)


def test_client_profit_sums_profitable_and_loss_making_projects() -> None:
    engagements = [
        _timesheet("E1", "P1", "C1"),
        # Billed 10 INR/h, paid 60 INR/h: 10 hours lose 500
        _timesheet("E2", "P2", "C1", billing_amount=10, billing_currency="INR",
                   comp=60, comp_period="Hourly"),
    ]
    entries = [
        _log("E1", date(2025, 3, 3), P1=10),
        _log("E2", date(2025, 3, 3), P2=10),
    ]

    result = aggregate(engagements, entries, MARCH, "INR", RATES)

    assert result.by_cost_object["P2"].profit == pytest.approx(-500)
    assert result.by_cost_object["P1"].profit == pytest.approx(79_890.4, abs=0.05)
    # 79,890.4 + (-500)
    assert result.by_client["C1"].profit == pytest.approx(79_390.4, abs=0.05)
    assert result.total.profit == math.fsum(f.profit for f in result.by_client.values())
    summaries = client_summaries(result)
    assert [s.client_id for s in summaries] == ["C1"]
    assert summaries[0].total_profit == result.by_client["C1"].profit


def test_zero_hours_gives_exact_zero_figures() -> None:
    result = aggregate([_timesheet("E1", "P1", "C1")], [], MARCH, "INR", RATES)
    assert result.by_client["C1"] == Figures()
    assert result.total == Figures()


def test_unapproved_and_out_of_window_hours_are_ignored() -> None:
    entries = [
        _log("E1", date(2025, 3, 5), approved=False, P1=8),
        _log("E1", date(2025, 4, 1), P1=8),
    ]
    result = aggregate([_timesheet("E1", "P1", "C1")], entries, MARCH, "INR", RATES)
    assert result.total.revenue == 0


@pytest.fixture
def portfolio():
    engagements = [
        _timesheet("E1", "P1", "C1"),
        _timesheet("E2", "P1", "C1", billing_amount=0.1, comp=333_333.33),
        _timesheet("E2", "P2", "C2", billing_amount=1_234_567, billing_currency="INR",
                   billing_period="LPA", comp=0.3, comp_currency="USD",
                   comp_period="Hourly"),
        _timesheet("E3", "P3", "C3", billing_amount=95_000.07, billing_currency="INR",
                   billing_period="Monthly", comp=41_000, comp_period="Monthly"),
        Engagement(
            subject_id="E4",
            cost_object_id="REQ-9",
            client_id="C2",
            kind=KIND_PLACEMENT,
            compensation=CompensationRecord("E4", 1_200_000),
            fee_spec=FeeSpec("percentage", 8.33),
            start_date=date(2025, 3, 17),
        ),
    ]
    entries = [
        _log("E1", date(2025, 3, 3), P1=7.3),
        _log("E1", date(2025, 3, 4), P1=0.1),
        _log("E2", date(2025, 3, 4), P1=2.2, P2=5.9),
        _log("E2", date(2025, 3, 18), P2=3.3),
        _log("E3", date(2025, 3, 21), P3=9.7),
        _log("E3", date(2025, 3, 28), P3=0.7),
    ]
    schedules = {"E3": Schedule(working_days_per_year=252, hours_per_day=9)}
    return engagements, entries, schedules


def test_total_is_exact_sum_of_clients(portfolio) -> None:
    engagements, entries, schedules = portfolio
    result = aggregate(engagements, entries, MARCH, "INR", RATES, schedules)

    for measure in ("revenue", "cost", "profit", "hours"):
        expected = math.fsum(getattr(f, measure) for f in result.by_client.values())
        assert getattr(result.total, measure) == expected

    for client_id, figures in result.by_client.items():
        members = [
            ef.figures.revenue
            for ef in result.by_engagement
            if ef.engagement.client_id == client_id
        ]
        assert figures.revenue == math.fsum(members)


def test_aggregate_is_idempotent(portfolio) -> None:
    engagements, entries, schedules = portfolio
    first = aggregate(engagements, entries, MARCH, "INR", RATES, schedules)
    second = aggregate(engagements, entries, MARCH, "INR", RATES, schedules)
    assert first == second


def test_aggregate_is_independent_of_input_order(portfolio) -> None:
    engagements, entries, schedules = portfolio
    reference = aggregate(engagements, entries, MARCH, "INR", RATES, schedules)

    rng = random.Random(7)
    for _ in range(5):
        shuffled_engagements = list(engagements)
        shuffled_entries = list(entries)
        rng.shuffle(shuffled_engagements)
        rng.shuffle(shuffled_entries)
        result = aggregate(
            shuffled_engagements, shuffled_entries, MARCH, "INR", RATES, schedules
        )
        assert result.total == reference.total
        assert result.by_client == reference.by_client
        assert result.by_subject == reference.by_subject
        assert result.by_cost_object == reference.by_cost_object


def test_per_subject_schedule_is_used(portfolio) -> None:
    engagements, entries, schedules = portfolio
    result = aggregate(engagements, entries, MARCH, "INR", RATES, schedules)
    ef = next(ef for ef in result.by_engagement if ef.engagement.subject_id == "E3")
    assert ef.hourly_billing_rate == pytest.approx(95_000.07 * 12 / (252 * 9))


def test_default_schedule_applies_to_other_subjects() -> None:
    entries = [_log("E1", date(2025, 3, 3), P1=1)]
    engagement = _timesheet("E1", "P1", "C1")
    result = aggregate(
        [engagement], entries, MARCH, "INR", RATES,
        default_schedule=Schedule(working_days_per_year=250, hours_per_day=8),
    )
    assert result.total.cost == pytest.approx(1_200_000 / 2000)


def test_placement_counts_only_when_it_starts_in_window(portfolio) -> None:
    engagements, entries, schedules = portfolio
    march = aggregate(engagements, entries, MARCH, "INR", RATES, schedules)
    april = aggregate(
        engagements, entries, Window(date(2025, 4, 1), date(2025, 4, 30)), "INR",
        RATES, schedules,
    )
    assert march.by_cost_object["REQ-9"].revenue == pytest.approx(99_960)
    assert march.by_cost_object["REQ-9"].profit == pytest.approx(99_960)
    assert april.by_cost_object["REQ-9"] == Figures()


def test_malformed_record_fails_whole_call() -> None:
    engagements = [
        _timesheet("E1", "P1", "C1"),
        _timesheet("E2", "P2", "C1", billing_amount=-5),
    ]
    with pytest.raises(InvalidRateError):
        aggregate(engagements, [], MARCH, "INR", RATES)


@pytest.mark.parametrize(
    "fee_spec, error",
    [
        (FeeSpec("percentage", -1), InvalidCommissionError),
        (FeeSpec("bonus", 10), UnsupportedCommissionTypeError),
    ],
)
def test_commission_errors_propagate(fee_spec, error) -> None:
    placement = Engagement(
        subject_id="E9",
        cost_object_id="REQ-1",
        client_id="C1",
        kind=KIND_PLACEMENT,
        compensation=CompensationRecord("E9", 1_000_000),
        fee_spec=fee_spec,
        # Outside the window: validation still applies
        start_date=date(2024, 1, 1),
    )
    with pytest.raises(error):
        aggregate([placement], [], MARCH, "INR", RATES)


def test_timesheet_without_billing_raises() -> None:
    engagement = Engagement(
        subject_id="E1",
        cost_object_id="P1",
        client_id="C1",
        kind=KIND_TIMESHEET,
        compensation=CompensationRecord("E1", 1),
    )
    with pytest.raises(InvalidEngagementError):
        aggregate([engagement], [], MARCH, "INR", RATES)


def test_unknown_kind_raises() -> None:
    engagement = Engagement(
        subject_id="E1",
        cost_object_id="P1",
        client_id="C1",
        kind="retainer",
        compensation=CompensationRecord("E1", 1),
    )
    with pytest.raises(InvalidEngagementError):
        aggregate([engagement], [], MARCH, "INR", RATES)


def test_unknown_mode_raises() -> None:
    with pytest.raises(ValueError):
        aggregate([], [], MARCH, "INR", RATES, mode="forecast")


def test_empty_inputs_give_empty_result() -> None:
    result = aggregate([], [], MARCH, "INR", RATES)
    assert result.by_client == {}
    assert result.total == Figures()


def test_accrual_mode_prorates_over_assignment_days() -> None:
    engagement = _timesheet(
        "E1", "P1", "C1",
        billing_amount=3_650_000, billing_currency="INR", billing_period="LPA",
        start_date=date(2025, 3, 22),
    )
    # No logged hours: accrual ignores attendance
    result = aggregate([engagement], [], MARCH, "INR", RATES, mode="accrual")

    days = 10  # 22 → 31 March inclusive
    assert result.total.revenue == pytest.approx(3_650_000 * days / 365)
    assert result.total.cost == pytest.approx(1_200_000 * days / 365)
    assert result.total.hours == pytest.approx(days * 8)


def test_accrual_mode_hourly_billing() -> None:
    engagement = _timesheet(
        "E1", "P1", "C1",
        start_date=date(2025, 3, 1), end_date=date(2025, 3, 5),
    )
    result = aggregate([engagement], [], MARCH, "INR", RATES, mode="accrual")
    assert result.total.revenue == pytest.approx(100 * 84 * 5 * 8)


def test_accrual_mode_assignment_outside_window_is_zero() -> None:
    engagement = _timesheet(
        "E1", "P1", "C1",
        start_date=date(2025, 1, 1), end_date=date(2025, 2, 28),
    )
    result = aggregate([engagement], [], MARCH, "INR", RATES, mode="accrual")
    assert result.total.revenue == 0
    assert result.total.hours == 0


def test_aggregate_logs_summary(caplog) -> None:
    with caplog.at_level(logging.INFO, logger="hr_finsight.engine"):
        aggregate([_timesheet("E1", "P1", "C1")], [], MARCH, "INR", RATES)
    assert "Aggregated 1 engagements" in caplog.text


def test_result_to_dataframe_levels(portfolio) -> None:
    engagements, entries, schedules = portfolio
    result = aggregate(engagements, entries, MARCH, "INR", RATES, schedules)
    df = result_to_dataframe(result)

    assert list(df.columns) == ["level", "key", "revenue", "cost", "profit", "hours"]
    assert set(df["level"]) == {"subject", "cost_object", "client", "total"}
    total_row = df[df["level"] == "total"].iloc[0]
    assert total_row["key"] == "TOTAL"
    assert total_row["revenue"] == result.total.revenue
    assert list(df[df["level"] == "client"]["key"]) == ["C1", "C2", "C3"]


def test_engagements_to_dataframe_keeps_input_order(portfolio) -> None:
    engagements, entries, schedules = portfolio
    result = aggregate(engagements, entries, MARCH, "INR", RATES, schedules)
    df = engagements_to_dataframe(result)
    assert len(df) == len(engagements)
    assert list(df["subject_id"]) == [e.subject_id for e in engagements]
    placement_row = df[df["kind"] == KIND_PLACEMENT].iloc[0]
    assert placement_row["hourly_billing_rate"] is None or math.isnan(
        placement_row["hourly_billing_rate"]
    )


def _placement(start_date, fee_spec=None, **kwargs) -> Engagement:
    return Engagement(
        subject_id="C1",
        cost_object_id="REQ-1",
        client_id="ACME",
        kind=KIND_PLACEMENT,
        compensation=CompensationRecord("C1", 1_200_000, "INR", "LPA"),
        fee_spec=fee_spec or FeeSpec("percentage", 8.33),
        start_date=start_date,
        **kwargs,
    )


def test_percentage_placement_commission_in_aggregate() -> None:
    """8.33 % of a 1,200,000 INR annual compensation."""
    result = aggregate([_placement(date(2025, 3, 17))], [], MARCH, "INR", RATES)
    assert result.by_client["ACME"].revenue == pytest.approx(99_960)
    assert result.by_client["ACME"].profit == pytest.approx(99_960)
    assert result.total.revenue == pytest.approx(99_960)


def test_undated_placement_is_rejected() -> None:
    with pytest.raises(InvalidEngagementError, match="no start date"):
        aggregate([_placement(None)], [], MARCH, "INR", RATES)


def test_datetime_engagement_dates_are_accepted() -> None:
    placement = _placement(datetime(2025, 3, 31, 17, 45))
    assert aggregate([placement], [], MARCH, "INR", RATES).total.revenue == pytest.approx(
        99_960
    )

    timesheet = _timesheet(
        "E1", "P1", "C1",
        start_date=datetime(2025, 3, 1, 9, 0), end_date=datetime(2025, 3, 5, 18, 0),
    )
    result = aggregate([timesheet], [], MARCH, "INR", RATES, mode="accrual")
    assert result.total.revenue == pytest.approx(100 * 84 * 5 * 8)
