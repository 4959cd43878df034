"""
Storage for experiments, visitor assignments and success events.

ExperimentStore is the interface the orchestration layer talks to. Two
implementations: InMemoryStore for tests and embedding, FileStore writing
CSV tables per experiment under data/experiments/.

The one hard requirement on any store is put_assignment_if_absent: of two
concurrent writers for the same (experiment, visitor) key exactly one wins,
and both get the winner back.
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pandas as pd

from .schema import Assignment, Experiment, SuccessEvent, parse_timestamp

logger = logging.getLogger(__name__)

DEFAULT_STORE_DIR = "data/experiments"


class ExperimentStore(ABC):
    """Persistence collaborator used by the service layer."""

    @abstractmethod
    def save_experiment(self, experiment: Experiment) -> None:
        with self._lock:
            self._experiments[experiment.experiment_id] = experiment

    def get_experiment(self, experiment_id: str) -> Optional[Experiment]:
        with self._lock:
            return self._experiments.get(experiment_id)

    def list_experiments(self) -> List[Experiment]:
        with self._lock:
            return list(self._experiments.values())

    def get_assignment(self, experiment_id: str, visitor_key: str) -> Optional[Assignment]:
        with self._lock:
            return self._assignments.get((experiment_id, visitor_key))

    def put_assignment_if_absent(self, assignment: Assignment) -> Assignment:
        key = (assignment.experiment_id, assignment.visitor_key)
        with self._lock:
            existing = self._assignments.get(key)
            if existing is not None:
                return existing
            self._assignments[key] = assignment
            return assignment

    def list_assignments(self, experiment_id: str) -> List[Assignment]:
        with self._lock:
            return [a for (eid, _), a in self._assignments.items() if eid == experiment_id]

    def append_event(self, event: SuccessEvent) -> None:
        with self._lock:
            self._events.append(event)

    def list_events(self, experiment_id: str) -> List[SuccessEvent]:
        with self._lock:
            return [e for e in self._events if e.experiment_id == experiment_id]


def _ensure_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def _read_table(path: Path) -> pd.DataFrame:
    if not path.exists():
        return pd.DataFrame()
    try:
        # Everything as str so ids like "NA" or "001" survive the round trip
        return pd.read_csv(path, dtype=str, keep_default_na=False)
    except pd.errors.EmptyDataError:
        return pd.DataFrame()


def _append_rows(rows: List[dict], path: Path) -> None:
    df = pd.DataFrame(rows)
    df.to_csv(path, mode="a", header=not path.exists(), index=False)


def _assignment_to_row(a: Assignment) -> dict:
    return {
        "experiment_id": a.experiment_id,
        "variation": a.variation,
        "user_id": a.user_id or "",
        "session_id": a.session_id or "",
        "assigned_at": a.assigned_at.isoformat(),
    }


def _row_to_assignment(row: dict) -> Assignment:
    return Assignment(
        experiment_id=row["experiment_id"],
        variation=row["variation"],
        user_id=row["user_id"] or None,
        session_id=row["session_id"] or None,
        assigned_at=parse_timestamp(row["assigned_at"]),
    )


def _event_to_row(e: SuccessEvent) -> dict:
    return {
        "experiment_id": e.experiment_id,
        "user_id": e.user_id,
        "event": e.event,
        "value": "" if e.value is None else e.value,
        "timestamp": e.timestamp.isoformat(),
    }


def _row_to_event(row: dict) -> SuccessEvent:
    return SuccessEvent(
        experiment_id=row["experiment_id"],
        user_id=row["user_id"],
        event=row["event"],
        value=float(row["value"]) if row["value"] != "" else None,
        timestamp=parse_timestamp(row["timestamp"]),
    )


class FileStore(ExperimentStore):
    """
    CSV-backed store.

    Layout per experiment: <base_dir>/<experiment_id>/experiment.json,
    assignments.csv and events.csv. Assignments are read from disk once per
    experiment and then served from an in-memory index keyed by visitor.
    Writes are serialised with a lock, so uniqueness of assignments holds for
    a single process only.
    """

    def __init__(self, base_dir: str = DEFAULT_STORE_DIR):
        self.base_dir = Path(base_dir)
        self._lock = threading.Lock()
        self._assignment_index: Dict[str, Dict[str, Assignment]] = {}

    def _experiment_dir(self, experiment_id: str) -> Path:
        return self.base_dir / experiment_id

    def _assignments_path(self, experiment_id: str) -> Path:
        return self._experiment_dir(experiment_id) / "assignments.csv"

    def _events_path(self, experiment_id: str) -> Path:
        return self._experiment_dir(experiment_id) / "events.csv"

    def save_experiment(self, experiment: Experiment) -> None:
        path = _ensure_dir(self._experiment_dir(experiment.experiment_id)) / "experiment.json"
        with self._lock:
            with open(path, "w") as f:
                json.dump(experiment.to_dict(), f, indent=2)
        logger.info(f"Experiment {experiment.experiment_id} saved to {path}")

    def get_experiment(self, experiment_id: str) -> Optional[Experiment]:
        path = self._experiment_dir(experiment_id) / "experiment.json"
        if not path.exists():
            return None
        with open(path) as f:
            return Experiment.from_dict(json.load(f))

    def list_experiments(self) -> List[Experiment]:
        if not self.base_dir.exists():
            return []
        experiments = []
        for d in sorted(self.base_dir.iterdir()):
            if d.is_dir() and (d / "experiment.json").exists():
                experiments.append(self.get_experiment(d.name))
        return experiments

    def _assignments_for(self, experiment_id: str) -> Dict[str, Assignment]:
        # Caller holds self._lock
        index = self._assignment_index.get(experiment_id)
        if index is None:
            index = {}
            df = _read_table(self._assignments_path(experiment_id))
            for row in df.to_dict("records"):
                a = _row_to_assignment(row)
                index.setdefault(a.visitor_key, a)
            self._assignment_index[experiment_id] = index
        return index

    def get_assignment(self, experiment_id: str, visitor_key: str) -> Optional[Assignment]:
        with self._lock:
            return self._assignments_for(experiment_id).get(visitor_key)

    def put_assignment_if_absent(self, assignment: Assignment) -> Assignment:
        with self._lock:
            index = self._assignments_for(assignment.experiment_id)
            existing = index.get(assignment.visitor_key)
            if existing is not None:
                return existing
            path = self._assignments_path(assignment.experiment_id)
            _ensure_dir(path.parent)
            _append_rows([_assignment_to_row(assignment)], path)
            index[assignment.visitor_key] = assignment
            return assignment

    def list_assignments(self, experiment_id: str) -> List[Assignment]:
        with self._lock:
            return list(self._assignments_for(experiment_id).values())

    def append_event(self, event: SuccessEvent) -> None:
        path = self._events_path(event.experiment_id)
        _ensure_dir(path.parent)
        with self._lock:
            _append_rows([_event_to_row(event)], path)

    def list_events(self, experiment_id: str) -> List[SuccessEvent]:
        df = _read_table(self._events_path(experiment_id))
        return [_row_to_event(row) for row in df.to_dict("records")]
