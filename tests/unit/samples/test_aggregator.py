"""Unit tests for SampleAggregator."""

import json
import threading

import pytest

from hotpath_agent.samples.aggregator import SampleAggregator
from hotpath_agent.samples.schemas import DataSample, HotpathSample
from tests.conftest import hotpath_totals


class TestMerge:
    def test_merge_is_additive(self, aggregator: SampleAggregator):
        aggregator.merge({"foo": 3}, "p", "prod")
        aggregator.merge({"foo": 2, "bar": 1}, "p", "prod")

        samples = aggregator.export()

        assert len(samples) == 1
        assert samples[0].projectName == "p"
        assert samples[0].environment == "prod"
        assert {h.fnName: h.nCalls for h in samples[0].hotpaths} == {"foo": 5, "bar": 1}

    def test_same_function_in_different_projects_is_kept_apart(self, aggregator: SampleAggregator):
        aggregator.merge({"foo": 1}, "p1", "prod")
        aggregator.merge({"foo": 4}, "p2", "prod")
        aggregator.merge({"foo": 7}, "p1", "staging")

        assert hotpath_totals(aggregator.export()) == {
            ("p1", "prod", "foo"): 1,
            ("p2", "prod", "foo"): 4,
            ("p1", "staging", "foo"): 7,
        }

    def test_empty_batch_adds_nothing(self, aggregator: SampleAggregator):
        aggregator.merge({}, "p", "prod")
        assert aggregator.export() == []
        assert aggregator.is_empty()

    def test_concurrent_merges_sum_up(self, aggregator: SampleAggregator):
        """Totals equal the sum of all deltas regardless of interleaving."""
        n_threads = 8
        n_merges = 200

        def worker(i):
            for _ in range(n_merges):
                aggregator.merge({"shared": 1, f"own-{i}": 2}, "p", "prod")
                aggregator.export()

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(n_threads)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        totals = hotpath_totals(aggregator.export())
        assert totals[("p", "prod", "shared")] == n_threads * n_merges
        for i in range(n_threads):
            assert totals[("p", "prod", f"own-{i}")] == 2 * n_merges


class TestExport:
    def test_one_sample_per_project_environment(self, aggregator: SampleAggregator):
        aggregator.merge({"a": 1, "b": 2}, "p1", "prod")
        aggregator.merge({"c": 3}, "p2", "")

        samples = {(s.projectName, s.environment): s for s in aggregator.export()}

        assert set(samples) == {("p1", "prod"), ("p2", None)}
        assert len(samples[("p1", "prod")].hotpaths) == 2
        assert samples[("p2", None)].hotpaths == [HotpathSample(fnName="c", nCalls=3)]

    def test_empty_environment_is_omitted_on_the_wire(self, aggregator: SampleAggregator):
        aggregator.merge({"c": 3}, "p2", "")

        (sample,) = aggregator.export()

        assert sample.to_variables() == {
            "projectName": "p2",
            "hotpaths": [{"fnName": "c", "nCalls": 3}],
        }

    def test_export_does_not_mutate(self, aggregator: SampleAggregator):
        aggregator.merge({"foo": 1}, "p", "prod")
        aggregator.export()
        aggregator.export()
        assert hotpath_totals(aggregator.export()) == {("p", "prod", "foo"): 1}

    def test_data_sample_requires_hotpaths(self):
        with pytest.raises(ValueError):
            DataSample(projectName="p", environment="prod", hotpaths=[])


class TestClearAndRelease:
    def test_clear_then_export_is_empty(self, aggregator: SampleAggregator):
        aggregator.merge({"foo": 1, "bar": 2}, "p", "prod")
        aggregator.clear()
        assert aggregator.export() == []
        assert len(aggregator) == 0

    def test_release_of_full_export_empties_aggregator(self, aggregator: SampleAggregator):
        aggregator.merge({"foo": 1, "bar": 2}, "p", "prod")
        aggregator.merge({"baz": 5}, "q", "")

        aggregator.release(aggregator.export())

        assert aggregator.export() == []

    def test_release_keeps_counts_merged_after_export(self, aggregator: SampleAggregator):
        aggregator.merge({"foo": 3}, "p", "prod")
        exported = aggregator.export()

        aggregator.merge({"foo": 2, "bar": 1}, "p", "prod")
        aggregator.release(exported)

        assert hotpath_totals(aggregator.export()) == {
            ("p", "prod", "foo"): 2,
            ("p", "prod", "bar"): 1,
        }


class TestDump:
    def test_dump_renders_nested_json(self, aggregator: SampleAggregator):
        aggregator.merge({"foo": 3}, "p", "prod")
        aggregator.merge({"bar": 1}, "p", "")

        dumped = json.loads(aggregator.dump())

        assert dumped == {"p": {"prod": {"foo": 3}, "": {"bar": 1}}}

    def test_dump_does_not_mutate(self, aggregator: SampleAggregator):
        aggregator.merge({"foo": 3}, "p", "prod")
        aggregator.dump()
        assert hotpath_totals(aggregator.export()) == {("p", "prod", "foo"): 3}
