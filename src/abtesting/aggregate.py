"""
Event aggregation for experiment analysis.

Folds assignments and success events into per-variation visitor and success
counts. Successes are deduplicated per visitor: repeated events from one
visitor count once.
"""

import logging
from typing import Dict, Optional, Sequence

import pandas as pd

from .schema import Assignment, Experiment, SuccessEvent, VariationStats

logger = logging.getLogger(__name__)

ASSIGNMENT_COLUMNS = ["experiment_id", "visitor_key", "variation"]
EVENT_COLUMNS = ["experiment_id", "visitor_key", "event"]


def success_event_name(experiment: Experiment) -> Optional[str]:
    """Event name that counts as a success, or None when any event counts."""
    if experiment.success_metric and experiment.success_metric.target:
        return experiment.success_metric.target
    return None


def _assignments_frame(assignments: Sequence[Assignment]) -> pd.DataFrame:
    df = pd.DataFrame(
        [
            {
                "experiment_id": a.experiment_id,
                "visitor_key": a.visitor_key,
                "variation": a.variation,
            }
            for a in assignments
        ],
        columns=ASSIGNMENT_COLUMNS,
    )
    # One assignment per (experiment, visitor); the earliest record wins
    return df.drop_duplicates(subset=["experiment_id", "visitor_key"], keep="first")


def _events_frame(events: Sequence[SuccessEvent]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "experiment_id": e.experiment_id,
                "visitor_key": e.user_id,
                "event": e.event,
            }
            for e in events
        ],
        columns=EVENT_COLUMNS,
    )


def aggregate(
    events: Sequence[SuccessEvent],
    assignments: Sequence[Assignment],
    success_event: Optional[str] = None,
) -> Dict[str, VariationStats]:
    """
    Compute visitor and success counts per variation.

    Args:
        events: Success events (any experiment; matched on experiment + visitor)
        assignments: Assignment records
        success_event: Only events with this name count; None means any event

    Returns:
        Dict mapping variation name -> VariationStats, in first-assigned order.
        Empty when there are no assignments.
    """
    assign_df = _assignments_frame(assignments)
    if assign_df.empty:
        return {}

    visitors = assign_df.groupby("variation", sort=False).size()

    events_df = _events_frame(events)
    if success_event is not None:
        events_df = events_df[events_df["event"] == success_event]

    converted = events_df[["experiment_id", "visitor_key"]].drop_duplicates()
    # Inner join drops events from visitors with no known bucket
    attributed = assign_df.merge(converted, on=["experiment_id", "visitor_key"], how="inner")
    successes = attributed.groupby("variation", sort=False).size()

    unattributed = len(converted) - len(attributed)
    if unattributed > 0:
        logger.info(f"Ignored events from {unattributed} unassigned visitors")

    return {
        name: VariationStats(
            name=name,
            visitors=int(n),
            successes=int(successes.get(name, 0)),
        )
        for name, n in visitors.items()
    }
