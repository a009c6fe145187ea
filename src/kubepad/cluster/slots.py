"""Fixed 8-slot arena mapping backend workloads to grid rows.

Every cluster backend keeps its local mirror in a WorkloadSlots instance.
The arena applies the admission rule and the placement rule and turns
remote observations (watch notifications or poll snapshots) into AppEvents:

    admission   the enable label must be "true"; duplicate names are ignored
    placement   preferred row if free, else the lowest free row, else dropped
    diffing     replicas up/down -> SCALED_UP/SCALED_DOWN, rollout settled ->
                DEPLOYED, disappeared or disabled -> DELETED

The arena never talks to a backend and never notifies observers; callers
fire the returned events after releasing their own locks.
"""

import logging
from collections.abc import Iterable
from threading import RLock

from kubepad.exceptions import EmptySlotError, InvalidSlotError
from kubepad.models import AppEvent, LabelConfig, Workload
from kubepad.protocols import AppEventType

logger = logging.getLogger(__name__)

SLOT_COUNT = 8


def rollout_in_flight(
    desired: int,
    generation: int | None = None,
    observed_generation: int | None = None,
    updated: int | None = None,
    ready: int | None = None,
    current: int | None = None,
) -> bool:
    """
    Decide whether a Deployment-style rollout is still in progress.

    A rollout is in flight while the controller has not observed the latest
    spec, while fewer than ``desired`` replicas are updated or ready, or
    while surplus replicas are still terminating.
    """
    if generation is not None and observed_generation is not None:
        if observed_generation < generation:
            return True
    if (updated or 0) < desired or (ready or 0) < desired:
        return True
    return current is not None and current > desired


class WorkloadSlots:
    """
    Thread-safe arena of at most 8 workloads indexed by row.

    Args:
        labels: Reserved label keys (enable flag, row hint)
        kind: Human-readable workload kind for log messages
    """

    def __init__(self, labels: LabelConfig | None = None, kind: str = "workload"):
        self._labels = labels or LabelConfig()
        self._kind = kind
        self._slots: list[Workload | None] = [None] * SLOT_COUNT
        self._lock = RLock()

    # =================================================================
    # Queries
    # =================================================================

    def get(self, index: int) -> Workload | None:
        """Workload at the row, or None for empty or out-of-range rows."""
        if not 0 <= index < SLOT_COUNT:
            return None
        with self._lock:
            return self._slots[index]

    def require(self, index: int, operation: str = "scale") -> Workload:
        """
        Workload at the row, failing loudly if there is none.

        Raises:
            InvalidSlotError: If index is outside [0, 8)
            EmptySlotError: If the row is empty
        """
        if not 0 <= index < SLOT_COUNT:
            raise InvalidSlotError(index)
        with self._lock:
            workload = self._slots[index]
        if workload is None:
            raise EmptySlotError(index, operation)
        return workload

    def index_of(self, name: str) -> int | None:
        with self._lock:
            for index, workload in enumerate(self._slots):
                if workload is not None and workload.name == name:
                    return index
        return None

    def occupied(self) -> list[int]:
        """Occupied row indices in ascending order."""
        with self._lock:
            return [i for i, workload in enumerate(self._slots) if workload is not None]

    def count(self) -> int:
        return len(self.occupied())

    def exists(self, index: int) -> bool:
        return self.get(index) is not None

    def replicas(self, index: int) -> int:
        workload = self.get(index)
        return workload.replicas if workload is not None else -1

    def labels(self, index: int) -> dict[str, str]:
        workload = self.get(index)
        return dict(workload.labels) if workload is not None else {}

    # =================================================================
    # Mutations
    # =================================================================

    def clear(self) -> None:
        with self._lock:
            self._slots = [None] * SLOT_COUNT

    def replace(self, index: int, workload: Workload) -> None:
        """Overwrite an occupied row, e.g. after a scale request was accepted."""
        with self._lock:
            self.require(index, "update")
            self._slots[index] = workload

    def load(self, workloads: Iterable[Workload]) -> list[AppEvent]:
        """Clear the arena and admit every listed workload in order."""
        with self._lock:
            self.clear()
            events = [self.admit(workload) for workload in workloads]
        return [event for event in events if event is not None]

    def admit(self, workload: Workload) -> AppEvent | None:
        """
        Run admission and placement for a newly observed workload.

        Returns:
            ADDED event, or None if the workload was not placed
        """
        if not workload.is_enabled(self._labels.enable):
            logger.debug(f"Skipping {self._kind} {workload.name}: {self._labels.enable} not set")
            return None

        with self._lock:
            if self.index_of(workload.name) is not None:
                logger.info(f"{self._kind.capitalize()} with name {workload.name} already added. Ignored.")
                return None

            free = [i for i, slot in enumerate(self._slots) if slot is None]
            if not free:
                logger.warning(
                    f"Found new {self._kind} {workload.name} but could not add because all rows are occupied."
                )
                return None

            index = free[0]
            preferred = workload.preferred_row(self._labels.row)
            if preferred is not None and self._slots[preferred] is None:
                index = preferred

            self._slots[index] = workload

        logger.info(f"Added {self._kind} {workload.name} at index {index}.")
        return AppEvent(
            index=index,
            replicas=workload.replicas,
            labels=workload.labels,
            type=AppEventType.ADDED,
        )

    def update(self, workload: Workload) -> list[AppEvent]:
        """
        Fold a new observation of a workload into the arena.

        Unknown workloads go through admission. Known workloads that lost
        the enable label are removed. Otherwise a replica change yields a
        scale event and a settled rollout yields DEPLOYED (scale first).
        """
        with self._lock:
            index = self.index_of(workload.name)
            if index is None:
                added = self.admit(workload)
                return [added] if added else []

            if not workload.is_enabled(self._labels.enable):
                logger.info(f"{self._kind.capitalize()} {workload.name} was disabled.")
                removed = self.remove(workload.name)
                return [removed] if removed else []

            previous = self._slots[index]
            self._slots[index] = workload

        events: list[AppEvent] = []
        if previous.replicas < workload.replicas:
            logger.info(
                f"Scaled up {self._kind} {workload.name} from {previous.replicas} "
                f"to {workload.replicas} replicas"
            )
            events.append(self._event(index, workload, AppEventType.SCALED_UP))
        elif previous.replicas > workload.replicas:
            logger.info(
                f"Scaled down {self._kind} {workload.name} from {previous.replicas} "
                f"to {workload.replicas} replicas"
            )
            events.append(self._event(index, workload, AppEventType.SCALED_DOWN))

        # A replica change without a visible rollout counts as an already finished rollout
        if not workload.deploying and (previous.deploying or events):
            logger.debug(f"Rollout of {self._kind} {workload.name} finished")
            events.append(self._event(index, workload, AppEventType.DEPLOYED))

        return events

    def remove(self, name: str) -> AppEvent | None:
        """
        Clear the row of a workload that disappeared.

        Returns:
            DELETED event with zero replicas, or None if the name is unknown
        """
        with self._lock:
            index = self.index_of(name)
            if index is None:
                logger.debug(f"Ignoring removal of unknown {self._kind} {name}")
                return None
            workload = self._slots[index]
            self._slots[index] = None

        logger.info(f"Deleted {self._kind} {name}.")
        return AppEvent(index=index, replicas=0, labels=workload.labels, type=AppEventType.DELETED)

    def apply(self, action: str, workload: Workload) -> list[AppEvent]:
        """
        Apply a watch notification (``ADDED``, ``MODIFIED`` or ``DELETED``).

        Unknown actions are logged and ignored.
        """
        if action == "ADDED":
            # Watches replay ADDED for objects that may already be known
            return self.update(workload)
        if action == "MODIFIED":
            return self.update(workload)
        if action == "DELETED":
            removed = self.remove(workload.name)
            return [removed] if removed else []

        logger.warning(f"Ignoring unsupported watch action {action} for {self._kind} {workload.name}")
        return []

    def sync(self, snapshot: Iterable[Workload]) -> list[AppEvent]:
        """
        Diff a complete listing against the arena.

        Disappeared workloads are removed first so their rows are free
        for workloads that appear in the same snapshot. Duplicate names
        in the snapshot keep their first occurrence.
        """
        latest: dict[str, Workload] = {}
        for workload in snapshot:
            if workload.name not in latest:
                latest[workload.name] = workload

        events: list[AppEvent] = []
        with self._lock:
            for workload in list(self._slots):
                if workload is not None and workload.name not in latest:
                    removed = self.remove(workload.name)
                    if removed:
                        events.append(removed)

            for workload in latest.values():
                events.extend(self.update(workload))

        return events

    def _event(self, index: int, workload: Workload, event_type: AppEventType) -> AppEvent:
        return AppEvent(index=index, replicas=workload.replicas, labels=workload.labels, type=event_type)
