"""Unit tests for RequestWorker class."""

import asyncio
import threading

import pytest

from videoscribe.transcription.worker import RequestWorker


@pytest.fixture
def worker():
    worker = RequestWorker("test")
    yield worker
    worker.shutdown(timeout=5)


@pytest.mark.unit
class TestRequestWorker:
    
    def test_runs_coroutine_on_worker_thread(self, worker):
        async def which_thread():
            await asyncio.sleep(0)
            return threading.current_thread().name
        
        future = worker.submit("which_thread", which_thread)
        
        assert future.result(timeout=5) == "worker_test_0"
    
    def test_exception_is_set_on_future(self, worker):
        async def boom():
            raise ValueError("bad payload")
        
        future = worker.submit("boom", boom)
        
        with pytest.raises(ValueError, match="bad payload"):
            future.result(timeout=5)
    
    def test_worker_survives_failed_task(self, worker):
        async def boom():
            raise RuntimeError("first fails")
        
        async def fine():
            return 42
        
        failed = worker.submit("boom", boom)
        succeeded = worker.submit("fine", fine)
        
        assert succeeded.result(timeout=5) == 42
        assert failed.exception(timeout=5) is not None
    
    def test_tasks_run_in_order(self, worker):
        order = []
        
        def make(i):
            async def record():
                order.append(i)
            return record
        
        futures = [worker.submit(f"task_{i}", make(i)) for i in range(5)]
        for future in futures:
            future.result(timeout=5)
        
        assert order == [0, 1, 2, 3, 4]
    
    def test_cancelled_task_is_skipped(self):
        worker = RequestWorker("paused", max_concurrent_threads=0)
        called = []
        
        async def never():
            called.append(True)
        
        future = worker.submit("never", never)
        assert future.cancel()
        
        # Start a worker only now so the cancelled task is the first it sees
        worker.max_concurrent_threads = 1
        worker._start_workers()
        assert worker.shutdown(timeout=5)
        
        assert called == []
        assert future.cancelled()
    
    def test_shutdown_finishes_queued_tasks(self):
        worker = RequestWorker("draining")
        gate = threading.Event()
        
        async def wait_for_gate():
            await asyncio.get_running_loop().run_in_executor(None, gate.wait, 5)
            return "done"
        
        future = worker.submit("wait", wait_for_gate)
        threading.Timer(0.1, gate.set).start()
        
        assert worker.shutdown(timeout=5)
        assert future.result(timeout=0) == "done"
    
    def test_submit_after_shutdown_raises(self):
        worker = RequestWorker("closed")
        worker.shutdown(timeout=5)
        
        with pytest.raises(RuntimeError):
            worker.submit("late", lambda: None)
