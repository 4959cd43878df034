"""
Significance engine: baseline vs candidate comparison.

Wraps the pooled two-proportion z-test into a SignificanceResult with a
human-readable verdict. Degenerate inputs never escape as NaN or Inf:
zero-visitor arms produce a soft "insufficient data" result.
"""

import logging
import math

from ..errors import InsufficientDataError
from ..schema import SignificanceResult, VariationStats
from .hypothesis_tests import proportions_z_test

logger = logging.getLogger(__name__)

CONFIDENCE_LEVEL = 95
ALPHA = (100 - CONFIDENCE_LEVEL) / 100
MIN_SAMPLE_SIZE = 100
NEAR_SIGNIFICANCE_P = 0.1


def _finite(x: float, default: float) -> float:
    return float(x) if math.isfinite(x) else default


def _insufficient_data(a: VariationStats, b: VariationStats) -> SignificanceResult:
    return SignificanceResult(
        p_value=1.0,
        z_score=0.0,
        confidence_level=CONFIDENCE_LEVEL,
        relative_uplift=0.0,
        is_significant=False,
        message=(
            "Cannot calculate statistical significance with zero visitors in "
            f"one or both variations ({a.name}: {a.visitors}, {b.name}: {b.visitors})."
        ),
        recommendation="Keep collecting data: both variations need visitors before results can be analyzed.",
        low_sample_size=True,
        warning="Insufficient data",
    )


def _verdict(
    a: VariationStats,
    b: VariationStats,
    is_significant: bool,
    p_value: float,
    relative_uplift: float,
    low_sample_size: bool,
):
    rate_a = f"{a.success_rate * 100:.2f}"
    rate_b = f"{b.success_rate * 100:.2f}"

    if is_significant:
        if b.success_rate > a.success_rate:
            message = (
                f"The test result is significant! {b.name}'s conversion rate ({rate_b}%) "
                f"was higher than {a.name}'s ({rate_a}%). You can be {CONFIDENCE_LEVEL}% "
                "confident this is a consequence of the change and not random chance."
            )
            recommendation = f"Adopt variation {b.name}: it outperforms {a.name}."
        else:
            message = (
                f"The test result is significant! {b.name}'s conversion rate ({rate_b}%) "
                f"was lower than {a.name}'s ({rate_a}%). You can be {CONFIDENCE_LEVEL}% "
                "confident this is a consequence of the change and not random chance."
            )
            recommendation = f"No change recommended: keep {a.name}, {b.name} performs worse."
        return message, recommendation

    message = (
        f"The observed difference in conversion rate ({abs(relative_uplift):.2f}%) "
        "isn't big enough to declare a significant winner. There is no real difference "
        f"in performance between {a.name} and {b.name} or you need to collect more data."
    )
    if low_sample_size:
        recommendation = "Keep collecting data: sample sizes are too small for a reliable result."
    elif p_value <= NEAR_SIGNIFICANCE_P:
        recommendation = (
            "No change recommended yet. The results are close to significance; "
            "consider running the test longer."
        )
    else:
        recommendation = (
            "No change recommended. Continue running the test, or stop if you've "
            "reached your target sample size."
        )
    return message, recommendation


def evaluate(a: VariationStats, b: VariationStats) -> SignificanceResult:
    """
    Compare candidate b against baseline a.

    Args:
        a: Baseline variation stats
        b: Candidate variation stats

    Returns:
        SignificanceResult with finite p_value, z_score and relative_uplift
    """
    try:
        lift, lift_pct, z, p_value, ci_low, ci_high = proportions_z_test(
            a.visitors, a.successes, b.visitors, b.successes,
            ci_level=CONFIDENCE_LEVEL / 100,
        )
    except InsufficientDataError as e:
        logger.info(f"Significance not computed: {e}")
        return _insufficient_data(a, b)

    z = _finite(z, 0.0)
    p_value = _finite(p_value, 1.0)
    lift = _finite(lift, 0.0)
    lift_pct = _finite(lift_pct, 0.0)
    ci_low = _finite(ci_low, lift)
    ci_high = _finite(ci_high, lift)

    is_significant = p_value < ALPHA
    low_sample_size = min(a.visitors, b.visitors) < MIN_SAMPLE_SIZE
    warning = None
    if low_sample_size:
        warning = (
            f"Low sample size: fewer than {MIN_SAMPLE_SIZE} visitors in at least one "
            "variation; treat this result with caution."
        )

    message, recommendation = _verdict(a, b, is_significant, p_value, lift_pct, low_sample_size)

    return SignificanceResult(
        p_value=p_value,
        z_score=z,
        confidence_level=CONFIDENCE_LEVEL,
        relative_uplift=lift_pct,
        is_significant=is_significant,
        message=message,
        recommendation=recommendation,
        absolute_lift=lift,
        ci_low=ci_low,
        ci_high=ci_high,
        low_sample_size=low_sample_size,
        warning=warning,
    )
