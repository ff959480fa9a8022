"""
Pydantic schemas for hotpath samples
"""

from typing import Dict, List, NamedTuple, Optional

from pydantic import BaseModel, Field, NonNegativeInt, TypeAdapter


class SampleKey(NamedTuple):
    """Key of one accumulated call count."""

    project: str
    environment: str
    function: str


class HotpathSample(BaseModel):
    """Call count of a single function, as sent to the API server"""

    fnName: str = Field(..., description="Fully qualified function name")
    nCalls: int = Field(..., description="Number of calls since the last flush")


class DataSample(BaseModel):
    """All hotpaths accumulated for one project/environment"""

    projectName: str = Field(..., description="Project the samples belong to")
    environment: Optional[str] = Field(
        None, description="Deployment environment, omitted when not supplied"
    )
    hotpaths: List[HotpathSample] = Field(..., min_length=1)

    def to_variables(self) -> Dict:
        """Wire form used as the GraphQL `sample` variable."""
        return self.model_dump(exclude_none=True)


class SampleStatsResponse(BaseModel):
    """Response model for GET /samples/stats"""

    pending_samples: int
    batches_since_flush: int
    cache_length: int
    test_mode: bool
    flush_in_progress: bool


# Ingest body: {function name: call count}
SampleCounts = Dict[str, NonNegativeInt]

sample_counts_adapter: TypeAdapter[SampleCounts] = TypeAdapter(SampleCounts)
