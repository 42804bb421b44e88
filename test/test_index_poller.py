import pytest

from case_chat.exception.custom_exception import ConfigurationError, JobStatusQueryError
from case_chat.src.document_ingestion.index_poller import (
    IndexerExecution,
    IndexJobPoller,
    JobState,
)
from conftest import ScriptedStatusSource, running

JOB = "case-chunks-indexer"


def _poller(source, clock):
    return IndexJobPoller(source, clock=clock, sleep=clock.sleep)


@pytest.mark.asyncio
async def test_terminal_status_on_first_query_returns_without_sleeping(clock):
    source = ScriptedStatusSource(
        [IndexerExecution(status=JobState.SUCCEEDED, items_processed=12, items_failed=1)]
    )

    result = await _poller(source, clock).poll(JOB, 300, 5)

    assert result.status == JobState.SUCCEEDED
    assert result.is_complete
    assert result.items_processed == 12
    assert result.items_failed == 1
    assert result.elapsed_seconds == 0
    assert clock.sleeps == []
    assert source.calls == 1


@pytest.mark.asyncio
async def test_always_running_times_out_within_one_interval(clock):
    source = ScriptedStatusSource([running()])

    result = await _poller(source, clock).poll(JOB, 12, 5)

    assert result.status == JobState.TIMED_OUT
    assert not result.is_complete
    assert result.items_processed is None
    assert result.items_failed is None
    assert 12 < result.elapsed_seconds <= 12 + 5
    # queried at 0, 5, 10; at 15 the budget is exceeded before querying
    assert source.calls == 3


@pytest.mark.asyncio
async def test_terminal_status_at_the_timeout_boundary_wins(clock):
    source = ScriptedStatusSource(
        [running(), running(5), IndexerExecution(status=JobState.SUCCEEDED, items_processed=9)]
    )

    result = await _poller(source, clock).poll(JOB, 10, 5)

    assert result.status == JobState.SUCCEEDED
    assert result.elapsed_seconds == 10
    assert result.items_processed == 9
    assert clock.sleeps == [5, 5]


@pytest.mark.asyncio
async def test_pending_keeps_polling(clock):
    source = ScriptedStatusSource(
        [IndexerExecution(status=JobState.PENDING), IndexerExecution(status=JobState.SUCCEEDED)]
    )

    result = await _poller(source, clock).poll(JOB, 60, 2)

    assert result.status == JobState.SUCCEEDED
    assert clock.sleeps == [2]


@pytest.mark.asyncio
async def test_transient_failure_is_terminal_and_carries_the_error(clock):
    source = ScriptedStatusSource(
        [
            running(),
            IndexerExecution(
                status=JobState.TRANSIENT_FAILURE,
                items_processed=3,
                items_failed=2,
                error_message="document cracking failed",
            ),
        ]
    )

    result = await _poller(source, clock).poll(JOB, 60, 5)

    assert result.status == JobState.TRANSIENT_FAILURE
    assert result.is_complete
    assert result.error_message == "document cracking failed"
    assert result.items_failed == 2
    assert source.calls == 2


@pytest.mark.asyncio
async def test_reset_is_terminal(clock):
    source = ScriptedStatusSource([IndexerExecution(status=JobState.RESET)])

    result = await _poller(source, clock).poll(JOB, 60, 5)

    assert result.status == JobState.RESET
    assert result.items_processed == 0


@pytest.mark.asyncio
async def test_query_failure_is_reported_as_poll_error_without_retry(clock):
    source = ScriptedStatusSource([running(), JobStatusQueryError("403 Forbidden"), running()])

    result = await _poller(source, clock).poll(JOB, 60, 5)

    assert result.status == JobState.POLL_ERROR
    assert result.error_message == "403 Forbidden"
    assert not result.is_complete
    assert source.calls == 2


@pytest.mark.asyncio
async def test_no_recorded_execution_exits_idle(clock):
    source = ScriptedStatusSource([None])

    result = await _poller(source, clock).poll(JOB, 60, 5)

    assert result.status == JobState.IDLE
    assert not result.is_complete
    assert clock.sleeps == []


@pytest.mark.asyncio
async def test_poller_only_states_from_a_source_are_a_poll_error(clock):
    source = ScriptedStatusSource([IndexerExecution(status=JobState.TIMED_OUT)])

    result = await _poller(source, clock).poll(JOB, 60, 5)

    assert result.status == JobState.POLL_ERROR


@pytest.mark.asyncio
@pytest.mark.parametrize("timeout,interval", [(0, 5), (10, 0), (-1, 5)])
async def test_non_positive_arguments_are_rejected(clock, timeout, interval):
    source = ScriptedStatusSource([running()])

    with pytest.raises(ConfigurationError):
        await _poller(source, clock).poll(JOB, timeout, interval)
    assert source.calls == 0
