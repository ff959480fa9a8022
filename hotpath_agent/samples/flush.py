"""
Flush policy for accumulated samples.

Every ingested batch bumps a counter; once it exceeds the configured cache
length the aggregator is exported and sent to the API server. Samples are
only removed after every group was accepted, so a failed flush is retried,
together with newer samples, on the next trigger.
"""

import asyncio
import logging
import threading
from typing import Mapping

from hotpath_agent.auth.grant import AccessTokenCache
from hotpath_agent.core import metrics
from hotpath_agent.core.exceptions import CredentialError, SubmissionError
from hotpath_agent.msclient.client import SubmissionClient
from hotpath_agent.samples.aggregator import SampleAggregator
from hotpath_agent.samples.schemas import SampleStatsResponse

logger = logging.getLogger(__name__)


class FlushController:
    def __init__(
        self,
        aggregator: SampleAggregator,
        token_cache: AccessTokenCache,
        client: SubmissionClient,
        cache_length: int,
        test_mode: bool = False,
    ):
        self.aggregator = aggregator
        self.token_cache = token_cache
        self.client = client
        self.cache_length = cache_length
        self.test_mode = test_mode
        self._count = 0
        self._count_lock = threading.Lock()
        self._flush_lock = asyncio.Lock()

    @property
    def count(self) -> int:
        with self._count_lock:
            return self._count

    @property
    def flush_in_progress(self) -> bool:
        return self._flush_lock.locked()

    async def ingest(self, counts: Mapping[str, int], project: str, environment: str = "") -> None:
        """Merge a batch of call counts and flush if the cache length is exceeded."""
        self.aggregator.merge(counts, project, environment)

        with self._count_lock:
            self._count += 1
            count = self._count

        metrics.sample_batches_ingested_total.inc()
        metrics.pending_samples.set(len(self.aggregator))
        logger.info(
            f"Ingested {len(counts)} hotpaths for project={project} "
            f"environment={environment or '-'} (batch {count}/{self.cache_length})"
        )

        if count > self.cache_length:
            if self.flush_in_progress:
                logger.debug("Flush already in progress, samples kept for the next one")
                return
            await self.flush()

    async def flush(self) -> bool:
        """
        Send (or, in test mode, dump) everything accumulated so far.

        Returns:
            True if the samples were delivered and released, False otherwise.
            Failures are logged, never raised.
        """
        async with self._flush_lock:
            with self._count_lock:
                batches = self._count

            samples = self.aggregator.export()

            if self.test_mode:
                self.aggregator.dump()
                metrics.flushes_total.labels(status="dumped").inc()
            else:
                try:
                    await self._send(samples)
                except (CredentialError, SubmissionError) as e:
                    metrics.flushes_total.labels(status="failed").inc()
                    logger.error(
                        f"Failed to flush {len(samples)} samples, keeping them for retry: {e}"
                    )
                    return False
                metrics.flushes_total.labels(status="success").inc()
                logger.info(f"Flushed {len(samples)} samples to {self.client.endpoint}")

            self.aggregator.release(samples)
            with self._count_lock:
                self._count = max(self._count - batches, 0)

            metrics.pending_samples.set(len(self.aggregator))
            return True

    async def _send(self, samples) -> None:
        if not samples:
            return

        try:
            token = await self.token_cache.get_access_token()
        except CredentialError as e:
            raise CredentialError(f"get API access token: {e}") from e

        for sample in samples:
            await self.client.submit_sample(sample, token)

    def stats(self) -> SampleStatsResponse:
        return SampleStatsResponse(
            pending_samples=len(self.aggregator),
            batches_since_flush=self.count,
            cache_length=self.cache_length,
            test_mode=self.test_mode,
            flush_in_progress=self.flush_in_progress,
        )

    async def shutdown(self) -> None:
        """Best-effort final flush of whatever is still pending."""
        if self.aggregator.is_empty():
            return

        logger.info(f"Flushing {len(self.aggregator)} pending samples before shutdown")
        if not await self.flush():
            logger.warning("Final flush failed, pending samples are dropped")
