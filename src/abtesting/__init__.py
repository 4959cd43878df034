"""Experiment assignment and statistical-significance engine for A/B testing."""

from .schema import (
    Experiment,
    Variation,
    Assignment,
    SuccessEvent,
    SuccessMetric,
    SuccessMetricType,
    VariationStats,
    SignificanceResult,
    ExperimentSummary,
)
from .errors import (
    ABTestError,
    ConfigurationError,
    InsufficientDataError,
    ValidationError,
    ExperimentNotFoundError,
    VisitorNotAssignedError,
)
from .bucketing import bucket
from .assignment import select_variation, is_experiment_active, get_baseline_variation
from .aggregate import aggregate
from .stats import evaluate
from .store import ExperimentStore, InMemoryStore, FileStore
from .service import (
    assign_variation,
    assign_for_experiment,
    track_success,
    compute_stats,
    analyze_significance,
    summarize_experiment,
)
from .report import save_analysis, render_summary_html

__all__ = [
    "Experiment",
    "Variation",
    "Assignment",
    "SuccessEvent",
    "SuccessMetric",
    "SuccessMetricType",
    "VariationStats",
    "SignificanceResult",
    "ExperimentSummary",
    "ABTestError",
    "ConfigurationError",
    "InsufficientDataError",
    "ValidationError",
    "ExperimentNotFoundError",
    "VisitorNotAssignedError",
    "bucket",
    "select_variation",
    "is_experiment_active",
    "get_baseline_variation",
    "aggregate",
    "evaluate",
    "ExperimentStore",
    "InMemoryStore",
    "FileStore",
    "assign_variation",
    "assign_for_experiment",
    "track_success",
    "compute_stats",
    "analyze_significance",
    "summarize_experiment",
    "save_analysis",
    "render_summary_html",
]
