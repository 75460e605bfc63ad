import unittest

from postenrich.concurrency import run_indexed_tasks
from postenrich.stats import PassStats


def _boom():
    raise RuntimeError("boom")


class RunIndexedTasksTest(unittest.TestCase):
    def test_results_are_ordered_by_index(self):
        tasks = [(i, (lambda n=i: n * n)) for i in range(10)]
        self.assertEqual(
            run_indexed_tasks(tasks, max_workers=4), [(i, i * i) for i in range(10)]
        )

    def test_a_failing_task_yields_none(self):
        tasks = [(0, lambda: "a"), (1, _boom), (2, lambda: "c")]
        for workers in (1, 3):
            with self.assertLogs("postenrich.concurrency", "WARNING"):
                results = run_indexed_tasks(tasks, max_workers=workers)
            self.assertEqual(results, [(0, "a"), (1, None), (2, "c")])

    def test_no_tasks(self):
        self.assertEqual(run_indexed_tasks([], max_workers=4), [])


class PassStatsTest(unittest.TestCase):
    def test_bump_and_export(self):
        stats = PassStats()
        stats.bump("probes")
        stats.bump("probes", 2)
        exported = stats.as_dict()
        self.assertEqual(exported["probes"], 3)
        self.assertNotIn("_lock", exported)


if __name__ == "__main__":
    unittest.main()
