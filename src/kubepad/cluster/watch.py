"""Background watch loop over a Kubernetes list endpoint."""

import logging
import threading
from collections.abc import Callable
from typing import Any, Optional

from kubernetes import watch
from kubernetes.client.exceptions import ApiException

logger = logging.getLogger(__name__)

# Server-side timeout of one watch request; the loop reconnects afterwards.
# Bounds how long a stopped watch keeps its connection open.
WATCH_TIMEOUT_SECONDS = 30


class ResourceWatch:
    """
    Streams watch events for one list endpoint on a daemon thread.

    The stream resumes from the last seen resourceVersion after timeouts
    and transient errors. When the server reports the version as expired
    (HTTP 410) events may have been missed, so ``on_expired`` is called to
    let the owner re-list before watching again.

    Args:
        name: Label for log messages and the thread name
        list_func: Client list method, e.g. ``AppsV1Api.list_namespaced_deployment``
        handler: Called with (event type, object) for every event
        version_of: Extracts the resourceVersion from a streamed object
        on_expired: Called after a 410; returns the resourceVersion to resume from
        retry_interval: Seconds to wait after an error before reconnecting
        **list_kwargs: Passed to ``list_func`` (namespace, group, plural, ...)
    """

    def __init__(
        self,
        name: str,
        list_func: Callable[..., Any],
        handler: Callable[[str, Any], None],
        version_of: Callable[[Any], Optional[str]],
        on_expired: Optional[Callable[[], Optional[str]]] = None,
        retry_interval: float = 5.0,
        **list_kwargs: Any,
    ):
        self._name = name
        self._list_func = list_func
        self._handler = handler
        self._version_of = version_of
        self._on_expired = on_expired
        self._retry_interval = retry_interval
        self._list_kwargs = list_kwargs

        self._watch = watch.Watch()
        self._resource_version: Optional[str] = None
        self._running = False
        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def resource_version(self) -> Optional[str]:
        return self._resource_version

    def start(self, resource_version: Optional[str] = None) -> None:
        """Start streaming from ``resource_version`` (None = from now)."""
        if self._running:
            logger.warning(f"Watch {self._name} is already running")
            return

        self._resource_version = resource_version
        self._running = True
        self._stopped.clear()
        self._thread = threading.Thread(
            target=self._run, name=f"kubepad-watch-{self._name}", daemon=True
        )
        self._thread.start()
        logger.debug(f"Watch {self._name} started at resourceVersion {resource_version}")

    def stop(self) -> None:
        """Stop streaming and wait briefly for the thread to exit."""
        self._running = False
        self._stopped.set()
        self._watch.stop()

        if self._thread and self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout=1.0)

        logger.debug(f"Watch {self._name} stopped")

    def _run(self) -> None:
        while self._running:
            try:
                self._stream_once()
            except ApiException as e:
                if e.status == 410:
                    logger.warning(f"Watch {self._name}: resourceVersion expired, re-listing")
                    self._resource_version = self._relist()
                    continue
                logger.error(f"Watch {self._name} failed: {e.status} {e.reason}")
                self._stopped.wait(self._retry_interval)
            except Exception as e:
                if not self._running:
                    break
                logger.error(f"Error in watch {self._name}: {e}", exc_info=True)
                self._stopped.wait(self._retry_interval)

    def _stream_once(self) -> None:
        kwargs = dict(self._list_kwargs)
        kwargs["timeout_seconds"] = WATCH_TIMEOUT_SECONDS
        if self._resource_version:
            kwargs["resource_version"] = self._resource_version

        for event in self._watch.stream(self._list_func, **kwargs):
            if not self._running:
                return

            event_type = event.get("type")
            obj = event.get("object")
            if event_type == "ERROR":
                logger.error(f"Watch {self._name} reported an error: {event.get('raw_object')}")
                continue

            version = self._version_of(obj)
            if version:
                self._resource_version = version

            try:
                self._handler(event_type, obj)
            except Exception as e:
                logger.error(f"Error handling {event_type} in watch {self._name}: {e}", exc_info=True)

    def _relist(self) -> Optional[str]:
        if self._on_expired is None:
            return None
        try:
            return self._on_expired()
        except Exception as e:
            logger.error(f"Re-list after expired watch {self._name} failed: {e}")
            self._stopped.wait(self._retry_interval)
            return None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
