"""
Pydantic schemas for the Mindsight GraphQL API
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class GraphQLRequest(BaseModel):
    """Request envelope: a query string plus its variables"""

    query: str
    variables: Dict[str, Any] = Field(default_factory=dict)


class GraphQLErrorLocation(BaseModel):
    line: int
    column: int


class GraphQLError(BaseModel):
    """A single application-level error reported by the server"""

    message: str = ""
    locations: Optional[List[GraphQLErrorLocation]] = None


class GraphQLResponse(BaseModel):
    """Response envelope; data is opaque to the agent"""

    data: Optional[Any] = None
    errors: Optional[List[GraphQLError]] = None
