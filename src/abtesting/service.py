"""
Experiment orchestration entrypoint.

Glue between the pure engine (bucketing, selection, aggregation,
significance) and an ExperimentStore. Every function takes the store
explicitly; there is no module-level default store.
"""

import logging
from datetime import datetime
from typing import Dict, Optional, Sequence

from .aggregate import aggregate, success_event_name
from .assignment import (
    VariationLike,
    get_baseline_variation,
    is_experiment_active,
    select_variation,
    validate_weights,
)
from .bucketing import bucket
from .errors import (
    ConfigurationError,
    ExperimentNotFoundError,
    ValidationError,
    VisitorNotAssignedError,
)
from .schema import (
    Assignment,
    Comparison,
    Experiment,
    ExperimentSummary,
    SignificanceResult,
    SuccessEvent,
    VariationStats,
    VariationSummary,
)
from .stats import check_srm, evaluate, rate_confidence_interval
from .store import ExperimentStore

logger = logging.getLogger(__name__)


def _load_experiment(store: ExperimentStore, experiment_id: str) -> Experiment:
    experiment = store.get_experiment(experiment_id)
    if experiment is None:
        raise ExperimentNotFoundError(experiment_id)
    return experiment


def assign_variation(
    store: ExperimentStore,
    experiment_id: str,
    visitor_key: str,
    variations: Sequence[VariationLike],
    fallback: str,
    experiment: Optional[Experiment] = None,
    user_id: Optional[str] = None,
    session_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> str:
    """
    Sticky variation for a visitor.

    Args:
        store: Assignment cache
        experiment_id: Experiment identifier
        visitor_key: Stable visitor identity used for bucketing and the cache key
        variations: Ordered Variation objects or (name, weight) pairs
        fallback: Returned when the experiment is not running
        experiment: Optional experiment; when given, its activity window is checked
        user_id: Stored on the assignment (defaults to visitor_key)
        session_id: Stored on the assignment for anonymous visitors; whichever
            of user_id or session_id is given must equal visitor_key
        now: Clock override for the activity check

    Returns:
        Variation name

    Raises:
        ConfigurationError: empty variation list or non-positive weights
        ValidationError: visitor_key differs from the stored user or session id
    """
    record_key = user_id or session_id
    if record_key and record_key != visitor_key:
        # The cache is read by visitor_key, so the record must be keyed the same way
        raise ValidationError(
            f"visitor_key '{visitor_key}' must equal the user or session id '{record_key}'"
        )

    if experiment is not None and not is_experiment_active(experiment, now):
        return fallback

    existing = store.get_assignment(experiment_id, visitor_key)
    if existing is not None:
        return existing.variation

    chosen = select_variation(bucket(experiment_id, visitor_key), variations)

    if user_id is None and session_id is None:
        user_id = visitor_key
    stored = store.put_assignment_if_absent(Assignment(
        experiment_id=experiment_id,
        variation=chosen,
        user_id=user_id,
        session_id=session_id,
    ))
    if stored.variation != chosen:
        logger.info(
            f"Concurrent assignment for {visitor_key} in {experiment_id}: "
            f"keeping {stored.variation}"
        )
    return stored.variation


def assign_for_experiment(
    store: ExperimentStore,
    experiment_id: str,
    fallback: str,
    user_id: Optional[str] = None,
    session_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> str:
    """
    Sticky variation for a stored experiment.

    Inactive or misconfigured experiments serve the fallback.

    Raises:
        ValidationError: neither user_id nor session_id given
        ExperimentNotFoundError: unknown experiment_id
    """
    visitor_key = user_id or session_id
    if not visitor_key:
        raise ValidationError("userId or sessionId is required")

    experiment = _load_experiment(store, experiment_id)

    try:
        validate_weights(experiment.variations)
    except ConfigurationError as e:
        logger.warning(f"Experiment {experiment_id} misconfigured, serving fallback: {e}")
        return fallback

    return assign_variation(
        store,
        experiment_id,
        visitor_key,
        experiment.variations,
        fallback,
        experiment=experiment,
        user_id=user_id,
        session_id=None if user_id else session_id,
        now=now,
    )


def track_success(
    store: ExperimentStore,
    experiment_id: str,
    user_id: str,
    event: str,
    value: Optional[float] = None,
) -> SuccessEvent:
    """
    Record a success event for an assigned visitor.

    Raises:
        ValidationError: missing user_id or event
        ExperimentNotFoundError: unknown experiment_id
        VisitorNotAssignedError: visitor has no assignment in this experiment
    """
    if not user_id or not event:
        raise ValidationError("userId and event are required")

    _load_experiment(store, experiment_id)

    if store.get_assignment(experiment_id, user_id) is None:
        raise VisitorNotAssignedError(experiment_id, user_id)

    success = SuccessEvent(
        experiment_id=experiment_id,
        user_id=user_id,
        event=event,
        value=value,
    )
    store.append_event(success)
    return success


def compute_stats(store: ExperimentStore, experiment_id: str) -> Dict[str, VariationStats]:
    """Per-variation visitor and success counts for a stored experiment."""
    experiment = _load_experiment(store, experiment_id)
    return aggregate(
        store.list_events(experiment_id),
        store.list_assignments(experiment_id),
        success_event=success_event_name(experiment),
    )


def analyze_significance(stats_a: VariationStats, stats_b: VariationStats) -> SignificanceResult:
    """Baseline stats_a vs candidate stats_b."""
    return evaluate(stats_a, stats_b)


def summarize_experiment(
    store: ExperimentStore,
    experiment_id: str,
    now: Optional[datetime] = None,
) -> ExperimentSummary:
    """
    Full performance summary of a stored experiment.

    Configured variations appear even with no traffic. Every non-baseline
    variation is compared with the baseline (the flagged one, else the first).
    """
    experiment = _load_experiment(store, experiment_id)
    events = store.list_events(experiment_id)
    stats = aggregate(
        events,
        store.list_assignments(experiment_id),
        success_event=success_event_name(experiment),
    )

    # Configured variations first, then any no longer configured but still assigned
    names = [v.name for v in experiment.variations]
    names += [n for n in stats if n not in names]
    configured = {v.name: v for v in experiment.variations}
    total_visitors = sum(s.visitors for s in stats.values())

    rows = []
    for name in names:
        s = stats.get(name, VariationStats(name=name))
        v = configured.get(name)
        ci_low, ci_high = rate_confidence_interval(s.successes, s.visitors)
        rows.append(VariationSummary(
            stats=s,
            weight=v.weight if v else 0.0,
            is_baseline=v.is_baseline if v else False,
            traffic_pct=s.visitors / total_visitors * 100 if total_visitors > 0 else 0.0,
            rate_ci_low=ci_low,
            rate_ci_high=ci_high,
        ))

    srm_passed, _, srm_p = check_srm(
        [r.stats.visitors for r in rows],
        [r.weight for r in rows],
    )

    comparisons = []
    baseline = get_baseline_variation(experiment.variations) or (names[0] if names else None)
    if baseline is not None:
        base_stats = next(r.stats for r in rows if r.stats.name == baseline)
        for r in rows:
            if r.stats.name == baseline:
                continue
            comparisons.append(Comparison(
                baseline=baseline,
                candidate=r.stats.name,
                result=evaluate(base_stats, r.stats),
            ))

    summary = ExperimentSummary(
        experiment_id=experiment.experiment_id,
        name=experiment.name,
        is_active=is_experiment_active(experiment, now),
        success_metric=experiment.success_metric,
        variations=rows,
        total_visitors=total_visitors,
        total_success_events=len(events),
        srm_passed=srm_passed,
        srm_p_value=srm_p,
        comparisons=comparisons,
    )
    logger.info(
        f"Summary for {experiment_id}: {total_visitors} visitors, "
        f"{len(events)} success events, srm_passed={srm_passed}"
    )
    return summary
