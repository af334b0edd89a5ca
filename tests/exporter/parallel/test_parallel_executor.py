"""
tests/exporter/parallel/test_parallel_executor.py - ParallelScrapeExecutor 테스트
"""

import queue
import threading
import time

import pytest

from exporter.exceptions import UpstreamError
from exporter.parallel.executor import (
    CycleCancelled,
    Emitter,
    ParallelConfig,
    ParallelScrapeExecutor,
    ScrapeTask,
)
from exporter.parallel.types import ErrorCategory


class TestParallelConfig:
    """ParallelConfig 테스트"""

    def test_default_values(self):
        config = ParallelConfig()

        assert config.max_workers == 20
        assert config.timeout_seconds == 300.0
        assert config.queue_size == 1000

    def test_max_workers_capped(self):
        """최대 100개로 제한"""
        assert ParallelConfig(max_workers=500).max_workers == 100

    def test_invalid_max_workers(self):
        with pytest.raises(ValueError):
            ParallelConfig(max_workers=0)


class TestEmitter:
    """Emitter 테스트"""

    def test_emit_counts(self):
        results: queue.Queue = queue.Queue()
        emitter = Emitter(results, threading.Event())

        emitter("a")
        emitter("b")

        assert emitter.count == 2
        assert results.get_nowait() == "a"

    def test_emit_after_cancel_raises(self):
        """취소 후 emit은 CycleCancelled"""
        cancel = threading.Event()
        cancel.set()
        emitter = Emitter(queue.Queue(), cancel)

        with pytest.raises(CycleCancelled):
            emitter("a")

        assert emitter.cancelled

    def test_full_queue_unblocks_on_cancel(self):
        """큐가 가득 찬 상태에서 취소되면 대기 해제"""
        results: queue.Queue = queue.Queue(maxsize=1)
        results.put("x")
        cancel = threading.Event()
        emitter = Emitter(results, cancel)
        raised = []

        def worker():
            try:
                emitter("y")
            except CycleCancelled:
                raised.append(True)

        t = threading.Thread(target=worker)
        t.start()
        time.sleep(0.1)
        cancel.set()
        t.join(timeout=2)

        assert raised == [True]


class TestParallelScrapeExecutor:
    """ParallelScrapeExecutor 테스트"""

    def test_empty_tasks(self):
        result = ParallelScrapeExecutor().execute([], sink=lambda item: None)

        assert result.results == ()
        assert not result.timed_out

    def test_all_items_reach_sink(self):
        """모든 워커 결과가 sink로 전달"""

        def make(n):
            def run(emit):
                for i in range(n):
                    emit((n, i))

            return run

        tasks = [ScrapeTask(f"task{n}", "us-east-1", make(n)) for n in (3, 5, 7)]
        collected = []

        result = ParallelScrapeExecutor(ParallelConfig(max_workers=3, queue_size=2)).execute(tasks, collected.append)

        assert len(collected) == 15
        assert result.success_count == 3
        assert sorted(r.data for r in result.successful) == [3, 5, 7]

    def test_sink_called_on_caller_thread(self):
        """sink는 호출 스레드에서만 실행"""
        caller = threading.get_ident()
        threads = set()

        tasks = [ScrapeTask("t", "r", lambda emit: emit(1)) for _ in range(4)]
        ParallelScrapeExecutor().execute(tasks, lambda item: threads.add(threading.get_ident()))

        assert threads == {caller}

    def test_failure_is_isolated(self):
        """한 작업의 예외가 다른 작업에 영향 없음"""

        def ok(emit):
            emit("record")

        def fail(emit):
            emit("partial")
            raise UpstreamError("aws_ondemand", "eu-west-1", "bulk pricing 조회 실패", status_code=503)

        tasks = [ScrapeTask("aws_spot", "us-east-1", ok), ScrapeTask("aws_ondemand", "eu-west-1", fail)]
        collected = []

        result = ParallelScrapeExecutor().execute(tasks, collected.append)

        assert sorted(collected) == ["partial", "record"]
        assert result.success_count == 1
        assert result.error_count == 1
        error = result.failed[0].error
        assert error.identifier == "aws_ondemand"
        assert error.region == "eu-west-1"
        assert error.category == ErrorCategory.SERVICE_ERROR
        assert error.error_code == "HTTP503"
        assert result.failed[0].data == 1

    def test_timeout_cancels_slow_tasks(self):
        """제한 시간 초과 시 미완료 작업은 TIMEOUT 실패"""
        stop = threading.Event()

        def slow(emit):
            while not stop.is_set():
                emit("tick")
                time.sleep(0.01)

        def fast(emit):
            emit("done")

        tasks = [ScrapeTask("slow", "us-east-1", slow), ScrapeTask("fast", "us-east-1", fast)]
        collected = []

        start = time.monotonic()
        result = ParallelScrapeExecutor(ParallelConfig(max_workers=2, timeout_seconds=0.3)).execute(
            tasks, collected.append
        )
        elapsed = time.monotonic() - start
        stop.set()

        assert result.timed_out
        assert elapsed < 2.0
        assert "done" in collected
        timeouts = [r for r in result.failed if r.identifier == "slow"]
        assert len(timeouts) == 1
        assert timeouts[0].error.category == ErrorCategory.TIMEOUT
        assert timeouts[0].error.error_code == "CycleTimeout"

    def test_queued_tasks_cancelled_on_timeout(self):
        """시작하지 못한 작업도 TIMEOUT 실패로 기록"""
        release = threading.Event()

        def blocking(emit):
            release.wait(timeout=2)

        tasks = [ScrapeTask(f"t{i}", "r", blocking) for i in range(3)]

        result = ParallelScrapeExecutor(ParallelConfig(max_workers=1, timeout_seconds=0.2)).execute(
            tasks, lambda item: None
        )
        release.set()

        assert result.timed_out
        assert result.error_count == 3
        assert all(r.error.category == ErrorCategory.TIMEOUT for r in result.failed)
