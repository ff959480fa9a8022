"""
FastAPI router for sample ingestion
"""

import logging
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status
from pydantic import ValidationError

from hotpath_agent.core import metrics
from hotpath_agent.core.exceptions import IngestError
from hotpath_agent.samples.flush import FlushController
from hotpath_agent.samples.schemas import SampleStatsResponse, sample_counts_adapter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/samples", tags=["samples"])


# Dependency to get the flush controller
async def get_flush_controller(request: Request) -> FlushController:
    """Dependency to get the flush controller built by create_app"""
    return request.app.state.flush_controller


def parse_sample_counts(body: bytes) -> Dict[str, int]:
    """
    Decode an ingest body into a {function: call count} mapping.

    Raises:
        IngestError: If the body is not a JSON object of non-negative integers
    """
    try:
        # strict: "3", 1.5 and true are not call counts
        return sample_counts_adapter.validate_json(body, strict=True)
    except ValidationError as e:
        error = e.errors()[0]
        location = ".".join(str(part) for part in error["loc"])
        detail = f"{location}: {error['msg']}" if location else error["msg"]
        raise IngestError(f"invalid json: {detail}")


@router.post("/", status_code=status.HTTP_201_CREATED)
async def ingest_samples(
    request: Request,
    project: Optional[str] = Query(None, description="Project the samples belong to"),
    environment: Optional[str] = Query(None, description="Deployment environment"),
    controller: FlushController = Depends(get_flush_controller),
):
    """Accept a burst of call counts, flushing to the API server when due"""
    if not project:
        metrics.sample_batches_rejected_total.inc()
        raise IngestError("must specify ``project'' query parameter")

    try:
        counts = parse_sample_counts(await request.body())
    except IngestError:
        metrics.sample_batches_rejected_total.inc()
        raise

    await controller.ingest(counts, project, environment or "")
    return Response(status_code=status.HTTP_201_CREATED)


@router.get("/stats", response_model=SampleStatsResponse)
async def get_sample_stats(
    controller: FlushController = Depends(get_flush_controller),
):
    """Pending samples and flush progress"""
    return controller.stats()
