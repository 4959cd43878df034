"""Tests for in-memory and file-backed stores."""
import threading
from datetime import datetime

import pytest
from src.abtesting.schema import (
    Assignment,
    Experiment,
    SuccessEvent,
    SuccessMetric,
    SuccessMetricType,
    Variation,
)
from src.abtesting.store import FileStore, InMemoryStore


@pytest.fixture(params=["memory", "file"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryStore()
    return FileStore(str(tmp_path / "experiments"))


def _experiment():
    return Experiment(
        experiment_id="exp_store",
        name="Store test",
        description="round trip",
        start_date=datetime(2024, 1, 1),
        success_metric=SuccessMetric(type=SuccessMetricType.CUSTOM, target="purchase", value=9.99),
        variations=[Variation("baseline", 0.5, is_baseline=True), Variation("new", 0.5)],
    )


def test_experiment_round_trip(store):
    store.save_experiment(_experiment())
    loaded = store.get_experiment("exp_store")
    assert loaded == _experiment()
    assert [e.experiment_id for e in store.list_experiments()] == ["exp_store"]
    assert store.get_experiment("missing") is None


def test_put_assignment_if_absent_keeps_first(store):
    """Second write for the same visitor returns the first."""
    first = store.put_assignment_if_absent(
        Assignment(experiment_id="exp", variation="A", user_id="001")
    )
    second = store.put_assignment_if_absent(
        Assignment(experiment_id="exp", variation="B", user_id="001")
    )
    assert first.variation == "A"
    assert second.variation == "A"
    assert len(store.list_assignments("exp")) == 1
    assert store.get_assignment("exp", "001").variation == "A"
    assert store.get_assignment("exp", "002") is None


def test_session_assignment(store):
    store.put_assignment_if_absent(Assignment(experiment_id="exp", variation="A", session_id="s-1"))
    found = store.get_assignment("exp", "s-1")
    assert found.user_id is None
    assert found.session_id == "s-1"


def test_events_append_only(store):
    store.append_event(SuccessEvent(experiment_id="exp", user_id="u1", event="click"))
    store.append_event(SuccessEvent(experiment_id="exp", user_id="u1", event="purchase", value=4.5))
    store.append_event(SuccessEvent(experiment_id="other", user_id="u2", event="click"))

    events = store.list_events("exp")
    assert [e.event for e in events] == ["click", "purchase"]
    assert events[0].value is None
    assert events[1].value == 4.5
    assert store.list_events("nothing") == []


def test_concurrent_assignment_single_winner(store):
    """Racing writers for one visitor all see the same stored variation."""
    results = []

    def write(variation):
        stored = store.put_assignment_if_absent(
            Assignment(experiment_id="exp", variation=variation, user_id="racer")
        )
        results.append(stored.variation)

    threads = [threading.Thread(target=write, args=(f"v{i % 3}",)) for i in range(12)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(set(results)) == 1
    assert len(store.list_assignments("exp")) == 1


def test_reads_during_concurrent_writes(store):
    """Listing and looking up assignments while another thread writes is safe."""
    stop = threading.Event()
    errors = []

    def writer():
        i = 0
        while not stop.is_set() and i < 5000:
            store.put_assignment_if_absent(
                Assignment(experiment_id="e", variation="A", user_id=f"w{i}")
            )
            i += 1

    t = threading.Thread(target=writer)
    t.start()
    try:
        for _ in range(300):
            store.list_assignments("e")
            store.get_assignment("e", "w0")
    except RuntimeError as e:
        errors.append(e)
    finally:
        stop.set()
        t.join()

    assert errors == []
    keys = [a.visitor_key for a in store.list_assignments("e")]
    assert len(keys) == len(set(keys))


def test_file_store_reads_assignments_once(tmp_path, monkeypatch):
    """Assignment lookups are served from memory after the first load."""
    import src.abtesting.store as store_module

    reads = []
    original = store_module._read_table

    def counting_read(path):
        reads.append(path.name)
        return original(path)

    monkeypatch.setattr(store_module, "_read_table", counting_read)

    store = FileStore(str(tmp_path))
    for i in range(50):
        store.put_assignment_if_absent(Assignment(experiment_id="exp", variation="A", user_id=f"u{i}"))
        assert store.get_assignment("exp", f"u{i}").variation == "A"

    assert reads.count("assignments.csv") == 1


def test_file_store_reloads_assignments_from_disk(tmp_path):
    """A fresh store sees what an earlier one wrote, keyed by visitor."""
    first = FileStore(str(tmp_path))
    first.put_assignment_if_absent(Assignment(experiment_id="exp", variation="A", user_id="u1"))
    first.put_assignment_if_absent(Assignment(experiment_id="exp", variation="B", session_id="s1"))

    second = FileStore(str(tmp_path))
    assert second.get_assignment("exp", "u1").variation == "A"
    assert second.get_assignment("exp", "s1").variation == "B"
    kept = second.put_assignment_if_absent(Assignment(experiment_id="exp", variation="B", user_id="u1"))
    assert kept.variation == "A"
    assert len(second.list_assignments("exp")) == 2
