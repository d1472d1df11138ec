import threading
import time
import unittest
from concurrent.futures import ThreadPoolExecutor

from nbody_sim.core.parallel import chunk_ranges, fork_join


class TestChunkRanges(unittest.TestCase):
    def test_covers_range_once(self) -> None:
        ranges = chunk_ranges(10, 4)
        self.assertEqual(ranges, [(0, 4), (4, 8), (8, 10)])

    def test_empty_and_degenerate_size(self) -> None:
        self.assertEqual(chunk_ranges(0, 4), [])
        self.assertEqual(chunk_ranges(3, 0), [(0, 1), (1, 2), (2, 3)])


class TestForkJoin(unittest.TestCase):
    def test_results_in_range_order(self) -> None:
        ranges = chunk_ranges(100, 7)
        with ThreadPoolExecutor(max_workers=4) as pool:
            results = fork_join(pool, lambda i0, i1: sum(range(i0, i1)), ranges)
        self.assertEqual(results, [sum(range(i0, i1)) for i0, i1 in ranges])
        self.assertEqual(sum(results), sum(range(100)))

    def test_failure_raised_after_all_tasks_finish(self) -> None:
        finished: list[int] = []
        lock = threading.Lock()

        def work(i0: int, i1: int) -> int:
            if i0 == 0:
                raise RuntimeError("chunk 0 failed")
            time.sleep(0.3)
            with lock:
                finished.append(i0)
            return i0

        with ThreadPoolExecutor(max_workers=3) as pool:
            with self.assertRaises(RuntimeError):
                fork_join(pool, work, [(0, 1), (1, 2), (2, 3)])
            # Snapshot the list before the pool shuts down.
            seen = sorted(finished)
        self.assertEqual(seen, [1, 2])

    def test_first_failing_range_wins(self) -> None:
        def work(i0: int, i1: int) -> int:
            if i0 == 2:
                raise KeyError("late")
            if i0 == 1:
                time.sleep(0.1)
                raise ValueError("early range")
            return i0

        with ThreadPoolExecutor(max_workers=3) as pool:
            with self.assertRaises(ValueError):
                fork_join(pool, work, [(0, 1), (1, 2), (2, 3)])

    def test_inline_stops_at_first_failure(self) -> None:
        calls: list[int] = []

        def work(i0: int, i1: int) -> int:
            calls.append(i0)
            if i0 == 1:
                raise RuntimeError("boom")
            return i0

        with self.assertRaises(RuntimeError):
            fork_join(None, work, [(0, 1), (1, 2), (2, 3)])
        self.assertEqual(calls, [0, 1])
