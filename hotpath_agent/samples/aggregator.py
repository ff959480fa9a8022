"""
In-memory accumulator of hotpath call counts.

Counts are keyed by (project, environment, function) and merged additively.
merge/clear/release take the lock exclusively; export/dump share it.
"""

import json
import logging
from typing import Dict, Iterable, List, Mapping, Tuple

from hotpath_agent.samples.schemas import DataSample, HotpathSample, SampleKey
from hotpath_agent.utils.rwlock import ReadWriteLock

logger = logging.getLogger(__name__)


class SampleAggregator:
    """Thread-safe accumulator of call counts."""

    def __init__(self):
        self._lock = ReadWriteLock()
        self._samples: Dict[SampleKey, int] = {}

    def merge(self, counts: Mapping[str, int], project: str, environment: str = "") -> None:
        """Add each function's call count to the totals of project/environment."""
        with self._lock.write_locked():
            for fn_name, n_calls in counts.items():
                key = SampleKey(project, environment, fn_name)
                self._samples[key] = self._samples.get(key, 0) + n_calls

        logger.debug(
            f"Merged {len(counts)} functions for project={project} environment={environment}"
        )

    def _group_by_project_env(self) -> Dict[Tuple[str, str], List[HotpathSample]]:
        groups: Dict[Tuple[str, str], List[HotpathSample]] = {}
        for key, count in self._samples.items():
            groups.setdefault((key.project, key.environment), []).append(
                HotpathSample(fnName=key.function, nCalls=count)
            )
        return groups

    def export(self) -> List[DataSample]:
        """
        Group every accumulated count by project/environment.

        Returns one DataSample per group; neither groups nor hotpaths are in
        any particular order.
        """
        with self._lock.read_locked():
            groups = self._group_by_project_env()

        return [
            DataSample(projectName=project, environment=environment or None, hotpaths=hotpaths)
            for (project, environment), hotpaths in groups.items()
        ]

    def dump(self) -> str:
        """Log and return a readable snapshot of the current counts."""
        with self._lock.read_locked():
            snapshot: Dict[str, Dict[str, Dict[str, int]]] = {}
            for key, count in self._samples.items():
                snapshot.setdefault(key.project, {}).setdefault(key.environment, {})[
                    key.function
                ] = count

        pretty = json.dumps(snapshot, indent=2, sort_keys=True)
        logger.info(
            f"TESTMODE | Samples accumulated thus far (not sending to server): {pretty}"
        )
        return pretty

    def clear(self) -> None:
        """Discard all accumulated counts."""
        with self._lock.write_locked():
            self._samples = {}

    def release(self, samples: Iterable[DataSample]) -> None:
        """
        Remove exactly the counts of previously exported samples.

        Counts merged after the export are kept; keys that drop to zero are
        removed, so releasing a full export with no concurrent merges leaves
        the aggregator empty.
        """
        with self._lock.write_locked():
            for sample in samples:
                environment = sample.environment or ""
                for hotpath in sample.hotpaths:
                    key = SampleKey(sample.projectName, environment, hotpath.fnName)
                    remaining = self._samples.get(key, 0) - hotpath.nCalls
                    if remaining:
                        self._samples[key] = remaining
                    else:
                        self._samples.pop(key, None)

    def is_empty(self) -> bool:
        return len(self) == 0

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._samples)

    def __repr__(self) -> str:
        return f"SampleAggregator(pending={len(self)})"
