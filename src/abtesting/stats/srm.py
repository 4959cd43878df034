"""
Sample Ratio Mismatch (SRM) chi-square test.

Detects if observed traffic per variation deviates significantly from the
configured weights.
"""

from typing import Sequence, Tuple

import numpy as np
from scipy import stats


def srm_chi_square(
    observed_counts: Sequence[int],
    weights: Sequence[float],
) -> Tuple[float, float]:
    """
    Chi-square goodness-of-fit test of traffic against weights.

    H0: traffic is split in proportion to weights
    H1: traffic split differs from weights

    Args:
        observed_counts: Visitors per variation
        weights: Configured weights, same order (need not sum to 1)

    Returns:
        Tuple of (chi2_statistic, p_value)
    """
    observed = np.asarray(observed_counts, dtype=float)
    w = np.asarray(weights, dtype=float)
    if len(observed) != len(w):
        raise ValueError("observed_counts and weights must have the same length")

    n_total = observed.sum()
    if len(observed) < 2 or n_total == 0 or w.sum() <= 0:
        return 0.0, 1.0

    expected = n_total * w / w.sum()

    # Avoid division by zero
    expected = np.where(expected == 0, 1e-10, expected)

    chi2 = np.sum((observed - expected) ** 2 / expected)
    p_value = stats.chi2.sf(chi2, df=len(observed) - 1)

    return float(chi2), float(p_value)


def check_srm(
    observed_counts: Sequence[int],
    weights: Sequence[float],
    alpha: float = 0.01,
) -> Tuple[bool, float, float]:
    """
    Check for sample ratio mismatch.

    Args:
        observed_counts: Visitors per variation
        weights: Configured weights
        alpha: Significance threshold (default 0.01)

    Returns:
        Tuple of (srm_passed, chi2_statistic, p_value)
    """
    chi2, p_value = srm_chi_square(observed_counts, weights)
    srm_passed = p_value >= alpha
    return srm_passed, chi2, p_value
