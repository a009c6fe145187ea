"""Pytest fixtures for tests."""

from concurrent.futures import Executor, Future
from pathlib import Path
from tempfile import TemporaryDirectory

import pytest

from kubepad.cluster import WorkloadSlots
from kubepad.core import ClusterNodeGrid
from kubepad.core.observer import ObserverManager
from kubepad.models import AppEvent, LabelConfig, NodeEvent, Workload
from kubepad.protocols import AppEventType, AppObserver, NodeEventType


class InlineExecutor(Executor):
    """Runs submitted calls immediately on the calling thread."""

    def submit(self, fn, /, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future


class FakeCluster:
    """
    In-memory Cluster whose events are fired by the test.

    Scale requests are recorded, not applied; tests decide which
    AppEvents the "backend" reports back.
    """

    def __init__(self):
        self.slots = WorkloadSlots(LabelConfig(), kind="app")
        self.scale_calls: list[tuple[int, int]] = []
        self.reset_calls = 0
        self.started = False
        self.closed = False
        self._observers = ObserverManager[AppObserver](observer_type_name="app")

    def app_count(self) -> int:
        return self.slots.count()

    def app_exists(self, index: int) -> bool:
        return self.slots.exists(index)

    def replicas(self, index: int) -> int:
        return self.slots.replicas(index)

    def labels(self, index: int) -> dict[str, str]:
        return self.slots.labels(index)

    def scale(self, index: int, replicas: int) -> None:
        self.slots.require(index, "scale")
        self.scale_calls.append((index, replicas))

    def reset(self) -> None:
        self.reset_calls += 1
        workloads = [self.slots.get(i) for i in self.slots.occupied()]
        self.fire_all(self.slots.load(workloads))

    def clear(self) -> None:
        self.slots.clear()

    def start(self) -> None:
        self.started = True

    def close(self) -> None:
        self.closed = True

    def register_observer(self, observer) -> None:
        self._observers.register(observer)

    def unregister_observer(self, observer) -> None:
        self._observers.unregister(observer)

    # Test helpers

    def add(self, name: str, replicas: int = 0, **labels: str) -> AppEvent:
        """Admit a workload and fire its ADDED event."""
        workload = Workload(
            name=name,
            replicas=replicas,
            labels={"LAUNCHPAD_ENABLE": "true", **labels},
        )
        event = self.slots.admit(workload)
        assert event is not None
        self.fire(event)
        return event

    def fire(self, event: AppEvent) -> None:
        self._observers.notify("on_app_event", event)

    def fire_all(self, events: list[AppEvent]) -> None:
        for event in events:
            self.fire(event)

    def report(self, index: int, replicas: int, event_type: AppEventType) -> None:
        """Fire an event as if the backend reported it for the row."""
        self.fire(
            AppEvent(index=index, replicas=replicas, labels=self.labels(index), type=event_type)
        )

    @property
    def observer_count(self) -> int:
        return len(self._observers)


class RecordingNodeObserver:
    """NodeObserver that keeps every event it receives."""

    def __init__(self):
        self.events: list[NodeEvent] = []

    def on_node_event(self, event: NodeEvent) -> None:
        self.events.append(event)

    def types(self) -> list[NodeEventType]:
        return [event.type for event in self.events]

    def triples(self) -> list[tuple[int, int, NodeEventType]]:
        return [(event.row, event.column, event.type) for event in self.events]

    def clear(self) -> None:
        self.events.clear()


class RecordingAppObserver:
    """AppObserver that keeps every event it receives."""

    def __init__(self):
        self.events: list[AppEvent] = []

    def on_app_event(self, event: AppEvent) -> None:
        self.events.append(event)

    def types(self) -> list[AppEventType]:
        return [event.type for event in self.events]


@pytest.fixture
def temp_dir():
    """Create a temporary directory that gets cleaned up."""
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def inline_executor():
    return InlineExecutor()


@pytest.fixture
def fake_cluster():
    return FakeCluster()


@pytest.fixture
def node_observer():
    return RecordingNodeObserver()


@pytest.fixture
def app_observer():
    return RecordingAppObserver()


@pytest.fixture
def grid(fake_cluster, inline_executor, node_observer):
    """Initialized grid over the fake cluster, scale requests run inline."""
    node_grid = ClusterNodeGrid(fake_cluster, executor=inline_executor)
    node_grid.register_observer(node_observer)
    node_grid.initialize()
    yield node_grid
    node_grid.shutdown()
