"""Tests for the ResourceWatch stream loop (run synchronously, no thread)."""

from unittest.mock import Mock, patch

import pytest
from kubernetes.client.exceptions import ApiException

from kubepad.cluster.watch import WATCH_TIMEOUT_SECONDS, ResourceWatch


def make_obj(version: str) -> Mock:
    obj = Mock()
    obj.metadata.resource_version = version
    return obj


@pytest.fixture
def mock_watch():
    with patch("kubepad.cluster.watch.watch.Watch") as watch_class:
        yield watch_class.return_value


@pytest.fixture
def handler():
    return Mock()


def build(handler, **kwargs) -> ResourceWatch:
    resource_watch = ResourceWatch(
        "deployments",
        Mock(name="list_func"),
        handler,
        lambda obj: obj.metadata.resource_version,
        retry_interval=0,
        namespace="default",
        **kwargs,
    )
    resource_watch._running = True
    return resource_watch


@pytest.mark.unit
class TestStream:
    """One pass over the event stream."""

    def test_events_reach_handler_and_advance_version(self, mock_watch, handler):
        first, second = make_obj("11"), make_obj("12")
        mock_watch.stream.return_value = iter([
            {"type": "ADDED", "object": first},
            {"type": "MODIFIED", "object": second},
        ])
        resource_watch = build(handler)

        resource_watch._stream_once()

        assert [c.args for c in handler.call_args_list] == [("ADDED", first), ("MODIFIED", second)]
        assert resource_watch.resource_version == "12"

    def test_list_kwargs_and_resume_version_are_passed(self, mock_watch, handler):
        mock_watch.stream.return_value = iter([])
        resource_watch = build(handler)
        resource_watch._resource_version = "7"

        resource_watch._stream_once()

        _, kwargs = mock_watch.stream.call_args
        assert kwargs == {
            "namespace": "default",
            "timeout_seconds": WATCH_TIMEOUT_SECONDS,
            "resource_version": "7",
        }

    def test_error_events_are_skipped(self, mock_watch, handler):
        mock_watch.stream.return_value = iter([
            {"type": "ERROR", "object": None, "raw_object": {"code": 500}},
        ])

        build(handler)._stream_once()

        handler.assert_not_called()

    def test_handler_failure_does_not_end_stream(self, mock_watch, handler):
        handler.side_effect = [RuntimeError("boom"), None]
        mock_watch.stream.return_value = iter([
            {"type": "ADDED", "object": make_obj("1")},
            {"type": "ADDED", "object": make_obj("2")},
        ])

        build(handler)._stream_once()

        assert handler.call_count == 2


@pytest.mark.unit
class TestLoop:
    """Reconnection behavior of the watch loop."""

    def test_expired_version_relists_and_resumes(self, mock_watch, handler):
        on_expired = Mock(return_value="99")
        resource_watch = build(handler, on_expired=on_expired)
        calls = []

        def stream(func, **kwargs):
            calls.append(kwargs)
            if len(calls) == 1:
                raise ApiException(status=410, reason="Gone")
            resource_watch._running = False
            return iter([])

        mock_watch.stream.side_effect = stream
        resource_watch._run()

        on_expired.assert_called_once_with()
        assert calls[1]["resource_version"] == "99"

    def test_other_api_errors_retry(self, mock_watch, handler):
        resource_watch = build(handler)
        calls = []

        def stream(func, **kwargs):
            calls.append(kwargs)
            if len(calls) == 1:
                raise ApiException(status=500, reason="Internal")
            resource_watch._running = False
            return iter([])

        mock_watch.stream.side_effect = stream
        resource_watch._run()

        assert len(calls) == 2

    def test_stop_stops_underlying_watch(self, mock_watch, handler):
        resource_watch = build(handler)

        resource_watch.stop()

        assert not resource_watch.is_running
        mock_watch.stop.assert_called_once_with()

    def test_stopped_watch_does_not_reconnect(self, mock_watch, handler):
        resource_watch = build(handler)
        resource_watch.stop()

        resource_watch._run()

        mock_watch.stream.assert_not_called()

    def test_server_timeout_bounds_teardown(self, mock_watch, handler):
        mock_watch.stream.return_value = iter([])

        build(handler)._stream_once()

        assert mock_watch.stream.call_args.kwargs["timeout_seconds"] <= 30
