"""Tests for the two-proportion z-test and significance verdicts."""
import math

import pytest
from src.abtesting.errors import InsufficientDataError
from src.abtesting.schema import VariationStats
from src.abtesting.stats.hypothesis_tests import (
    proportions_z_test,
    rate_confidence_interval,
)
from src.abtesting.stats.significance import evaluate


def test_proportions_z_test_known():
    """10% vs 13% on 1000 visitors each, pooled standard error."""
    lift, lift_pct, z, p_val, ci_lo, ci_hi = proportions_z_test(1000, 100, 1000, 130)
    assert lift == pytest.approx(0.03)
    assert lift_pct == pytest.approx(30.0)
    assert z == pytest.approx(2.1027, abs=1e-3)
    assert p_val == pytest.approx(0.0355, abs=1e-3)
    assert ci_lo < lift < ci_hi


def test_proportions_z_test_equal():
    """Equal proportions -> z = 0, p = 1."""
    _, _, z, p_val, _, _ = proportions_z_test(100, 30, 100, 30)
    assert z == 0.0
    assert p_val == pytest.approx(1.0)


def test_proportions_z_test_zero_visitors():
    with pytest.raises(InsufficientDataError):
        proportions_z_test(0, 0, 100, 10)


def test_evaluate_significant_positive():
    """Clear win for the candidate."""
    result = evaluate(VariationStats("A", 1000, 100), VariationStats("B", 1000, 130))
    assert result.is_significant
    assert result.relative_uplift == pytest.approx(30.0)
    assert result.confidence_level == 95
    assert not result.low_sample_size
    assert result.warning is None
    assert "higher" in result.message
    assert result.recommendation.startswith("Adopt variation B")


def test_evaluate_significant_negative():
    """Candidate significantly worse -> no change."""
    result = evaluate(VariationStats("A", 1000, 130), VariationStats("B", 1000, 100))
    assert result.is_significant
    assert result.z_score < 0
    assert "lower" in result.message
    assert result.recommendation.startswith("No change recommended")


def test_evaluate_small_sample():
    """50/5 vs 50/6: not significant, flagged as low sample size."""
    result = evaluate(VariationStats("A", 50, 5), VariationStats("B", 50, 6))
    assert not result.is_significant
    assert result.low_sample_size
    assert result.warning
    assert result.recommendation.startswith("Keep collecting data")


def test_evaluate_not_significant_large_sample():
    result = evaluate(VariationStats("A", 5000, 500), VariationStats("B", 5000, 505))
    assert not result.is_significant
    assert not result.low_sample_size
    assert result.recommendation.startswith("No change recommended")


def test_evaluate_symmetry():
    """Swapping arms negates z and keeps p."""
    a = VariationStats("A", 800, 96)
    b = VariationStats("B", 1200, 180)
    ab = evaluate(a, b)
    ba = evaluate(b, a)
    assert ab.z_score == pytest.approx(-ba.z_score)
    assert ab.p_value == pytest.approx(ba.p_value)


@pytest.mark.parametrize(
    "a,b",
    [
        (VariationStats("A", 0, 0), VariationStats("B", 0, 0)),
        (VariationStats("A", 0, 0), VariationStats("B", 100, 10)),
        (VariationStats("A", 100, 10), VariationStats("B", 0, 0)),
        (VariationStats("A", 100, 0), VariationStats("B", 100, 0)),
        (VariationStats("A", 100, 100), VariationStats("B", 100, 100)),
        (VariationStats("A", 100, 0), VariationStats("B", 100, 7)),
    ],
)
def test_evaluate_never_nan(a, b):
    """Degenerate inputs yield finite numbers."""
    result = evaluate(a, b)
    for x in (result.p_value, result.z_score, result.relative_uplift,
              result.ci_low, result.ci_high, result.absolute_lift):
        assert math.isfinite(x)
    assert 0.0 <= result.p_value <= 1.0


def test_evaluate_zero_visitors_soft_result():
    """Empty arm -> p = 1, z = 0, explanatory message, no exception."""
    result = evaluate(VariationStats("A", 0, 0), VariationStats("B", 100, 10))
    assert result.p_value == 1.0
    assert result.z_score == 0.0
    assert result.relative_uplift == 0.0
    assert not result.is_significant
    assert "zero visitors" in result.message


def test_evaluate_zero_baseline_rate_uplift():
    """A baseline with no conversions cannot produce relative uplift."""
    result = evaluate(VariationStats("A", 200, 0), VariationStats("B", 200, 20))
    assert result.relative_uplift == 0.0
    assert result.is_significant


def test_rate_confidence_interval():
    lo, hi = rate_confidence_interval(100, 1000)
    assert lo == pytest.approx(0.1 - 1.96 * math.sqrt(0.09 / 1000), abs=1e-4)
    assert hi == pytest.approx(0.1 + 1.96 * math.sqrt(0.09 / 1000), abs=1e-4)
    assert rate_confidence_interval(0, 0) == (0.0, 0.0)
    assert rate_confidence_interval(0, 10) == (0.0, 0.0)
    assert rate_confidence_interval(10, 10) == (1.0, 1.0)


def test_result_to_dict():
    d = evaluate(VariationStats("A", 1000, 100), VariationStats("B", 1000, 130)).to_dict()
    assert d["is_significant"] is True
    assert set(d) >= {"p_value", "z_score", "relative_uplift", "message", "recommendation"}
