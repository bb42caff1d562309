"""Unit tests for the Celery analysis task (run eagerly, coordinator injected)."""

from unittest.mock import patch

import pytest

from sentiment_service.exceptions import InvalidInput
from sentiment_service.llm.exceptions import BackendUnavailable
from sentiment_service.tasks.analysis_tasks import analyze_text_task


@pytest.fixture
def task_with_coordinator(coordinator):
    analyze_text_task._coordinator = coordinator
    yield analyze_text_task
    if analyze_text_task._loop is not None:
        analyze_text_task._loop.close()
    analyze_text_task._coordinator = None
    analyze_text_task._loop = None


def test_analyze_text_returns_result_dict(task_with_coordinator, fake_client):
    eager = task_with_coordinator.apply(args=("I love this product", "req-1"))

    payload = eager.get()
    assert payload["label"] == "POSITIVE"
    assert payload["request_id"] == "req-1"
    assert len(payload["fingerprint"]) == 64
    assert fake_client.calls == 1


def test_worker_loop_is_reused(task_with_coordinator, fake_client):
    task_with_coordinator.apply(args=("first",)).get()
    loop = task_with_coordinator._loop
    task_with_coordinator.apply(args=("second",)).get()

    assert task_with_coordinator._loop is loop
    assert fake_client.calls == 2


def test_invalid_input_fails_without_retry(task_with_coordinator):
    with patch.object(task_with_coordinator, "retry") as mock_retry:
        eager = task_with_coordinator.apply(args=("",))

    assert eager.failed()
    assert isinstance(eager.result, InvalidInput)
    mock_retry.assert_not_called()


def test_transient_backend_error_is_retried(task_with_coordinator, fake_client):
    fake_client.script = [BackendUnavailable("refused", retryable=True)]

    with patch.object(
        task_with_coordinator, "retry", return_value=RuntimeError("retry scheduled")
    ) as mock_retry:
        eager = task_with_coordinator.apply(args=("some text",))

    assert eager.failed()
    mock_retry.assert_called_once()
    assert mock_retry.call_args.kwargs["countdown"] == 30
