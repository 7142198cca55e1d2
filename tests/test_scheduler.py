"""Tests for the batch scheduler."""

import math

import pytest

from mailsweep.deletion import chunked, run_batches
from mailsweep.errors import GatewayError


class RecordingWorker:
    """Worker that records batches and fails on chosen batch numbers"""

    def __init__(self, fail_on=()):
        self.batches = []
        self.fail_on = set(fail_on)

    def __call__(self, batch):
        self.batches.append(batch)
        if len(self.batches) - 1 in self.fail_on:
            raise GatewayError("Gmail API error 400: invalidArgument", status=400)
        return len(batch)


class TestChunked:
    """Tests for id partitioning."""

    @pytest.mark.parametrize("n,size", [(0, 50), (1, 50), (50, 50), (51, 50), (120, 50), (7, 3)])
    def test_partition_sizes(self, n, size):
        ids = [str(i) for i in range(n)]
        chunks = chunked(ids, size)

        assert len(chunks) == math.ceil(n / size)
        assert sum(len(c) for c in chunks) == n
        assert [i for c in chunks for i in c] == ids
        assert all(len(c) <= size for c in chunks)

    def test_invalid_batch_size(self):
        with pytest.raises(ValueError):
            chunked(["a"], 0)


class TestRunBatches:
    """Tests for run_batches."""

    def test_worker_called_once_per_batch(self, sleep):
        worker = RecordingWorker()
        ids = [f"id{i}" for i in range(120)]

        report = run_batches(ids, worker, batch_size=50, pacing_delay=2.0, sleep=sleep)

        assert [len(b) for b in worker.batches] == [50, 50, 20]
        assert report.deleted_count == 120
        assert report.failed_count == 0
        assert report.errors == []
        assert report.batches == 3

    def test_pacing_between_batches_only(self, sleep):
        run_batches([str(i) for i in range(120)], RecordingWorker(), batch_size=50, pacing_delay=2.0, sleep=sleep)

        assert sleep.calls == [2.0, 2.0]

    def test_single_batch_never_sleeps(self, sleep):
        run_batches(["a", "b"], RecordingWorker(), batch_size=50, sleep=sleep)

        assert sleep.calls == []

    def test_empty_ids(self, sleep):
        worker = RecordingWorker()
        report = run_batches([], worker, sleep=sleep)

        assert worker.batches == []
        assert report.deleted_count == 0
        assert report.batches == 0

    def test_failed_batch_does_not_abort(self, sleep):
        worker = RecordingWorker(fail_on={1})
        ids = [f"id{i}" for i in range(120)]

        report = run_batches(ids, worker, batch_size=50, sleep=sleep)

        assert len(worker.batches) == 3
        assert report.deleted_count == 70
        assert report.failed_count == 50
        assert report.deleted_count + report.failed_count == len(ids)
        assert len(report.errors) == 1
        assert "invalidArgument" in report.errors[0]

    def test_partial_worker_result(self, sleep):
        report = run_batches(["a", "b", "c"], lambda batch: 2, batch_size=3, sleep=sleep)

        assert report.deleted_count == 2
        assert report.failed_count == 1

    def test_progress_callback(self, sleep):
        progress = []
        run_batches(
            [str(i) for i in range(5)],
            RecordingWorker(),
            batch_size=2,
            sleep=sleep,
            progress_callback=lambda done, total: progress.append((done, total)),
        )

        assert progress == [(2, 5), (4, 5), (5, 5)]
