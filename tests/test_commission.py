import pytest

from hr_finsight.commission import (
    commission,
    internal_placement_figures,
    placement_figures,
)
from hr_finsight.exceptions import (
    FinancialEngineError,
    InvalidCommissionError,
    InvalidEngagementError,
    InvalidRateError,
    UnsupportedCommissionTypeError,
)
from hr_finsight.models import (
    KIND_PLACEMENT,
    CompensationRecord,
    Engagement,
    FeeSpec,
    Schedule,
)

RATES = {"USD": 84}


def _placement(**kwargs) -> Engagement:
    defaults = dict(
        subject_id="C1",
        cost_object_id="REQ-1",
        client_id="ACME",
        kind=KIND_PLACEMENT,
        compensation=CompensationRecord("C1", 1_200_000, "INR", "LPA"),
    )
    defaults.update(kwargs)
    return Engagement(**defaults)


def test_percentage_commission() -> None:
    fee = commission(FeeSpec("percentage", 8.33), 1_200_000)
    assert fee == pytest.approx(99_960)


def test_percentage_commission_ignores_fee_currency() -> None:
    fee = commission(FeeSpec("percentage", 10, "USD"), 500_000, "INR", RATES)
    assert fee == pytest.approx(50_000)


def test_flat_commission_in_base_currency() -> None:
    assert commission(FeeSpec("flat", 75_000), 1_200_000) == pytest.approx(75_000)


def test_flat_commission_is_converted() -> None:
    fee = commission(FeeSpec("flat", 1_000, "USD"), 0, "INR", RATES)
    assert fee == pytest.approx(84_000)


def test_flat_commission_without_rate_raises() -> None:
    with pytest.raises(InvalidRateError):
        commission(FeeSpec("flat", 1_000, "EUR"), 0, "INR", RATES)


@pytest.mark.parametrize("fee_type", ["Flat", "FIXED", " fixed "])
def test_fee_type_is_case_insensitive_with_fixed_alias(fee_type) -> None:
    assert commission(FeeSpec(fee_type, 500), 0) == pytest.approx(500)


@pytest.mark.parametrize("value", [-1, -0.01, float("nan"), "10", None, True])
def test_invalid_commission_value_raises(value) -> None:
    with pytest.raises(InvalidCommissionError):
        commission(FeeSpec("percentage", value), 1_000)


@pytest.mark.parametrize("fee_type", ["bonus", "", None])
def test_unsupported_commission_type_raises(fee_type) -> None:
    with pytest.raises(UnsupportedCommissionTypeError):
        commission(FeeSpec(fee_type, 10), 1_000)


def test_commission_errors_are_value_errors() -> None:
    with pytest.raises(ValueError):
        commission(FeeSpec("bonus", 10), 1_000)
    assert issubclass(UnsupportedCommissionTypeError, FinancialEngineError)


def test_zero_commission_is_valid() -> None:
    assert commission(FeeSpec("percentage", 0), 1_200_000) == 0


def test_internal_placement_figures() -> None:
    figures = internal_placement_figures(1_500_000, 1_200_000)
    assert figures.revenue == pytest.approx(1_500_000)
    assert figures.profit == pytest.approx(300_000)
    assert figures.cost == 0


def test_external_placement_revenue_equals_profit() -> None:
    engagement = _placement(fee_spec=FeeSpec("percentage", 8.33))
    figures = placement_figures(engagement, "INR", RATES, Schedule())
    assert figures.revenue == pytest.approx(99_960)
    assert figures.profit == figures.revenue
    assert figures.cost == 0


def test_percentage_applies_to_annualized_compensation() -> None:
    engagement = _placement(
        compensation=CompensationRecord("C1", 1_000, "USD", "Monthly"),
        fee_spec=FeeSpec("percentage", 10),
    )
    figures = placement_figures(engagement, "INR", RATES, Schedule())
    assert figures.revenue == pytest.approx(1_000 * 84 * 12 * 0.10)


def test_internal_placement_uses_accrual_amount() -> None:
    engagement = _placement(
        placement_class="internal",
        accrual_amount=1_500_000,
    )
    figures = placement_figures(engagement, "INR", RATES, Schedule())
    assert figures.revenue == pytest.approx(1_500_000)
    assert figures.profit == pytest.approx(300_000)


def test_internal_placement_can_be_loss_making() -> None:
    engagement = _placement(
        placement_class="INTERNAL",
        accrual_amount=10_000,
        accrual_period_type="Monthly",
    )
    figures = placement_figures(engagement, "INR", RATES, Schedule())
    assert figures.profit == pytest.approx(120_000 - 1_200_000)


def test_internal_placement_without_accrual_raises() -> None:
    with pytest.raises(InvalidEngagementError):
        placement_figures(_placement(placement_class="internal"), "INR", RATES, Schedule())


def test_external_placement_without_fee_spec_raises() -> None:
    with pytest.raises(InvalidEngagementError):
        placement_figures(_placement(), "INR", RATES, Schedule())


def test_unknown_placement_class_raises() -> None:
    engagement = _placement(placement_class="partner", fee_spec=FeeSpec("flat", 1))
    with pytest.raises(UnsupportedCommissionTypeError):
        placement_figures(engagement, "INR", RATES, Schedule())
