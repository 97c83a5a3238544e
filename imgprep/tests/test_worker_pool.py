"""Tests for WorkerPool class."""

import queue
import threading
from unittest.mock import MagicMock

import pytest

from imgprep.errors import DerivationError
from imgprep.image_record import ImageRecord
from imgprep.item_queue import ItemQueue
from imgprep.work_item import ItemOutcome, WorkItem
from imgprep.worker_pool import END_OF_STREAM, WorkerPool


def make_item(name):
    return WorkItem(f'/p/{name}.jpg', '/p', name)


def make_record(item):
    return ImageRecord(
        full_path=item.source_path,
        thumb_path=f'/p/{item.name}-thumbnail.jpg',
        width=10,
        height=10,
    )


def collect(results):
    outcomes = []
    while True:
        message = results.get(timeout=5)
        if message is END_OF_STREAM:
            return outcomes
        outcomes.append(message)


class TestWorkerPool:
    """Tests for WorkerPool class."""

    @pytest.fixture
    def derivation(self):
        """Fixture providing a mocked derivation engine."""
        derivation = MagicMock()
        derivation.derive.side_effect = make_record
        return derivation

    def test_invalid_worker_count(self, derivation):
        """Test a pool needs at least one worker."""
        with pytest.raises(ValueError):
            WorkerPool(derivation, ItemQueue(), queue.Queue(), workers=0)

    def test_process_success(self, derivation, logger):
        """Test a successful derivation becomes a record outcome."""
        pool = WorkerPool(derivation, ItemQueue(), queue.Queue(), workers=1, logger=logger)
        item = make_item('a')

        outcome = pool.process(item)

        assert outcome.succeeded
        assert outcome.record.full_path == '/p/a.jpg'
        assert outcome.error is None

    def test_process_derivation_error(self, derivation, logger):
        """Test a derivation failure becomes a failed outcome."""
        item = make_item('a')
        derivation.derive.side_effect = DerivationError(item, 'decode', OSError('bad'))
        pool = WorkerPool(derivation, ItemQueue(), queue.Queue(), workers=1, logger=logger)

        outcome = pool.process(item)

        assert not outcome.succeeded
        assert isinstance(outcome.error, DerivationError)

    def test_process_unexpected_error(self, derivation, logger):
        """Test an unexpected exception does not escape the worker."""
        derivation.derive.side_effect = RuntimeError('boom')
        pool = WorkerPool(derivation, ItemQueue(), queue.Queue(), workers=1, logger=logger)

        outcome = pool.process(make_item('a'))

        assert not outcome.succeeded
        assert isinstance(outcome.error, RuntimeError)

    @pytest.mark.parametrize('workers', [1, 4])
    def test_every_item_resolved_once(self, derivation, logger, workers):
        """Test each queued item yields exactly one outcome, then END_OF_STREAM."""
        item_queue = ItemQueue(maxsize=3)
        results = queue.Queue()
        pool = WorkerPool(derivation, item_queue, results, workers=workers, logger=logger)
        items = [make_item(f'img{i:02d}') for i in range(25)]

        pool.start()
        for item in items:
            item_queue.put(item)
        item_queue.close()
        outcomes = collect(results)
        pool.join()

        assert sorted(o.name for o in outcomes) == [i.name for i in items]
        assert all(isinstance(o, ItemOutcome) and o.succeeded for o in outcomes)
        assert results.empty()

    def test_failures_do_not_stop_workers(self, derivation, logger):
        """Test a failing item does not prevent the rest from being processed."""
        def derive(item):
            if item.name == 'bad':
                raise DerivationError(item, 'decode')
            return make_record(item)

        derivation.derive.side_effect = derive
        item_queue = ItemQueue()
        results = queue.Queue()
        pool = WorkerPool(derivation, item_queue, results, workers=2, logger=logger)

        pool.start()
        for name in ('a', 'bad', 'b'):
            item_queue.put(make_item(name))
        item_queue.close()
        outcomes = {o.name: o for o in collect(results)}
        pool.join()

        assert outcomes['a'].succeeded
        assert outcomes['b'].succeeded
        assert not outcomes['bad'].succeeded

    def test_end_of_stream_without_items(self, derivation, logger):
        """Test an empty run still ends the result stream."""
        item_queue = ItemQueue()
        results = queue.Queue()
        pool = WorkerPool(derivation, item_queue, results, workers=3, logger=logger)

        pool.start()
        item_queue.close()

        assert collect(results) == []
        pool.join()
        assert derivation.derive.call_count == 0

    def test_start_twice(self, derivation, logger):
        """Test a pool cannot be started twice."""
        item_queue = ItemQueue()
        pool = WorkerPool(derivation, item_queue, queue.Queue(), workers=1, logger=logger)
        pool.start()
        try:
            with pytest.raises(RuntimeError):
                pool.start()
        finally:
            item_queue.close()
            pool.join()

    def test_worker_threads_named(self, derivation, logger):
        """Test worker threads carry their index in their name."""
        names = []

        def derive(item):
            names.append(threading.current_thread().name)
            return make_record(item)

        derivation.derive.side_effect = derive
        item_queue = ItemQueue()
        results = queue.Queue()
        pool = WorkerPool(derivation, item_queue, results, workers=1, logger=logger)

        pool.start()
        item_queue.put(make_item('a'))
        item_queue.close()
        collect(results)
        pool.join()

        assert names == ['worker-0']
