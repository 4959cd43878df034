"""
Weighted variation selection for A/B testing.

Partitions [0, 1) into half-open intervals proportional to variation weights,
in configuration order, and picks the interval containing a visitor's bucket.
Reordering variations changes the interval layout and can move existing
visitors; callers should treat variation order as part of the configuration.
"""

import logging
import math
from datetime import datetime
from typing import List, Optional, Sequence, Tuple, Union

from .bucketing import bucket
from .errors import ConfigurationError
from .schema import Experiment, Variation, as_utc, utc_now

logger = logging.getLogger(__name__)

VariationLike = Union[Variation, Tuple[str, float]]


def _as_pairs(variations: Sequence[VariationLike]) -> List[Tuple[str, float]]:
    pairs = []
    for v in variations:
        if isinstance(v, Variation):
            pairs.append((v.name, v.weight))
        else:
            name, weight = v
            pairs.append((name, weight))
    return pairs


def validate_weights(variations: Sequence[VariationLike]) -> float:
    """
    Check that variations can partition traffic.

    Returns:
        Total weight

    Raises:
        ConfigurationError: empty list, negative or non-finite weight, or total <= 0
    """
    pairs = _as_pairs(variations)
    if not pairs:
        raise ConfigurationError("Experiment has no variations")

    total = 0.0
    for name, weight in pairs:
        if weight is None or not math.isfinite(weight) or weight < 0:
            raise ConfigurationError(
                f"Variation '{name}' has invalid weight {weight!r}; weights must be non-negative"
            )
        total += weight

    if total <= 0:
        raise ConfigurationError("Variation weights must sum to a positive value")
    return total


def select_variation(bucket_value: float, variations: Sequence[VariationLike]) -> str:
    """
    Choose the variation whose cumulative weight boundary first exceeds bucket_value.

    Args:
        bucket_value: Visitor position in [0, 1), see bucketing.bucket
        variations: Ordered Variation objects or (name, weight) pairs

    Returns:
        Variation name
    """
    pairs = _as_pairs(variations)
    total = validate_weights(pairs)

    cumulative = 0.0
    for name, weight in pairs:
        cumulative += weight / total
        if bucket_value < cumulative:
            return name

    # Rounding can leave the last boundary just under 1.0; a trailing
    # zero-weight variation owns no interval, so skip it.
    for name, weight in reversed(pairs):
        if weight > 0:
            return name
    return pairs[-1][0]


def assign_visitor(
    experiment_id: str,
    visitor_key: str,
    variations: Sequence[VariationLike],
) -> str:
    """Bucket a visitor and select its variation. No caching."""
    return select_variation(bucket(experiment_id, visitor_key), variations)


def assign_visitors(
    experiment_id: str,
    visitor_keys: List[str],
    variations: Sequence[VariationLike],
) -> dict:
    """
    Assign many visitors at once.

    Returns:
        Dict mapping visitor_key -> variation name
    """
    result = {key: assign_visitor(experiment_id, key, variations) for key in visitor_keys}

    counts = {}
    for name in result.values():
        counts[name] = counts.get(name, 0) + 1
    logger.info(f"Assignment complete: {len(result)} visitors -> {counts}")
    return result


def is_experiment_active(experiment: Experiment, now: Optional[datetime] = None) -> bool:
    """
    Whether an experiment should currently bucket visitors.

    Inactive flag, a start date in the future, or an end date in the past
    all make it inactive. No dates means always active. Naive datetimes
    are read as UTC.
    """
    if not experiment.is_active:
        return False

    now = as_utc(now) if now else utc_now()
    if experiment.start_date and as_utc(experiment.start_date) > now:
        return False
    if experiment.end_date and as_utc(experiment.end_date) < now:
        return False
    return True


def get_baseline_variation(variations: Sequence[Variation]) -> Optional[str]:
    """Baseline flag first, then a variation literally named 'baseline'."""
    for v in variations:
        if v.is_baseline:
            return v.name
    for v in variations:
        if v.name.lower() == "baseline":
            return v.name
    return None
