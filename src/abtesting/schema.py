"""
Experiment data models for the assignment and significance engine.

Dataclass schemas for experiments, variations, visitor assignments,
success events, and the derived per-variation stats and significance results.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    """Naive datetimes are taken to be UTC already."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_timestamp(value: str) -> datetime:
    """ISO-8601, including the trailing "Z" JavaScript clients send."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


class SuccessMetricType(str, Enum):
    """Kind of success metric an experiment optimises."""
    CLICK = "click"
    CONVERSION = "conversion"
    CUSTOM = "custom"


@dataclass
class SuccessMetric:
    """Success metric descriptor attached to an experiment."""
    type: SuccessMetricType
    target: Optional[str] = None  # event name that counts as a success
    value: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type.value, "target": self.target, "value": self.value}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SuccessMetric":
        return cls(
            type=SuccessMetricType(d["type"]),
            target=d.get("target"),
            value=d.get("value"),
        )


@dataclass
class Variation:
    """A single arm of an experiment."""
    name: str
    weight: float = 1.0  # relative share of traffic, normalised at selection time
    is_baseline: bool = False


@dataclass
class Experiment:
    """Configuration for an A/B experiment."""
    experiment_id: str
    name: str
    description: str = ""
    version: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_active: bool = True
    success_metric: Optional[SuccessMetric] = None
    variations: List[Variation] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "experiment_id": self.experiment_id,
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "is_active": self.is_active,
            "success_metric": self.success_metric.to_dict() if self.success_metric else None,
            "variations": [
                {"name": v.name, "weight": v.weight, "is_baseline": v.is_baseline}
                for v in self.variations
            ],
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Experiment":
        """Inverse of to_dict."""
        metric = d.get("success_metric")
        return cls(
            experiment_id=d["experiment_id"],
            name=d["name"],
            description=d.get("description") or "",
            version=d.get("version"),
            start_date=parse_timestamp(d["start_date"]) if d.get("start_date") else None,
            end_date=parse_timestamp(d["end_date"]) if d.get("end_date") else None,
            is_active=d.get("is_active", True),
            success_metric=SuccessMetric.from_dict(metric) if metric else None,
            variations=[
                Variation(
                    name=v["name"],
                    weight=float(v.get("weight", 1.0)),
                    is_baseline=bool(v.get("is_baseline", False)),
                )
                for v in d.get("variations", [])
            ],
        )


@dataclass
class Assignment:
    """Durable record that a visitor was shown a variation."""
    experiment_id: str
    variation: str
    user_id: Optional[str] = None
    session_id: Optional[str] = None
    assigned_at: datetime = field(default_factory=utc_now)

    @property
    def visitor_key(self) -> str:
        """User id when authenticated, otherwise the session id."""
        if self.user_id:
            return self.user_id
        return self.session_id or ""


@dataclass
class SuccessEvent:
    """Append-only success event reported for a visitor."""
    experiment_id: str
    user_id: str
    event: str
    value: Optional[float] = None
    timestamp: datetime = field(default_factory=utc_now)


@dataclass
class VariationStats:
    """Visitor and success counts for one variation."""
    name: str
    visitors: int = 0
    successes: int = 0

    @property
    def success_rate(self) -> float:
        return self.successes / self.visitors if self.visitors > 0 else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "visitors": self.visitors,
            "successes": self.successes,
            "success_rate": self.success_rate,
        }


@dataclass
class SignificanceResult:
    """Outcome of comparing a candidate variation against a baseline."""
    p_value: float
    z_score: float
    confidence_level: int
    relative_uplift: float
    is_significant: bool
    message: str
    recommendation: str
    absolute_lift: float = 0.0
    ci_low: float = 0.0
    ci_high: float = 0.0
    low_sample_size: bool = False
    warning: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "p_value": self.p_value,
            "z_score": self.z_score,
            "confidence_level": self.confidence_level,
            "relative_uplift": self.relative_uplift,
            "is_significant": self.is_significant,
            "message": self.message,
            "recommendation": self.recommendation,
            "absolute_lift": self.absolute_lift,
            "ci_low": self.ci_low,
            "ci_high": self.ci_high,
            "low_sample_size": self.low_sample_size,
            "warning": self.warning,
        }


@dataclass
class VariationSummary:
    """Per-variation row of an experiment summary."""
    stats: VariationStats
    weight: float
    is_baseline: bool
    traffic_pct: float
    rate_ci_low: float
    rate_ci_high: float


@dataclass
class Comparison:
    """Significance of one candidate variation versus the baseline."""
    baseline: str
    candidate: str
    result: SignificanceResult


@dataclass
class ExperimentSummary:
    """Complete experiment performance summary."""
    experiment_id: str
    name: str
    is_active: bool
    success_metric: Optional[SuccessMetric] = None
    analysis_timestamp: datetime = field(default_factory=utc_now)
    variations: List[VariationSummary] = field(default_factory=list)
    total_visitors: int = 0
    total_success_events: int = 0

    # SRM
    srm_passed: bool = True
    srm_p_value: float = 1.0

    comparisons: List[Comparison] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "experiment_id": self.experiment_id,
            "name": self.name,
            "is_active": self.is_active,
            "success_metric": self.success_metric.to_dict() if self.success_metric else None,
            "analysis_timestamp": self.analysis_timestamp.isoformat(),
            "total_visitors": self.total_visitors,
            "total_success_events": self.total_success_events,
            "srm_passed": self.srm_passed,
            "srm_p_value": self.srm_p_value,
            "variations": [
                {
                    **v.stats.to_dict(),
                    "weight": v.weight,
                    "is_baseline": v.is_baseline,
                    "traffic_pct": v.traffic_pct,
                    "rate_ci_low": v.rate_ci_low,
                    "rate_ci_high": v.rate_ci_high,
                }
                for v in self.variations
            ],
            "comparisons": [
                {
                    "baseline": c.baseline,
                    "candidate": c.candidate,
                    **c.result.to_dict(),
                }
                for c in self.comparisons
            ],
        }
