"""
Mindsight API client.

Sends one GraphQL request per call with a bearer token. Transport problems
(connection, status, unparsable envelope) raise TransportError; errors the
server reports inside a valid envelope raise RemoteError.
"""

import logging
from typing import Any, Dict

import httpx
from pydantic import ValidationError

from hotpath_agent.core.exceptions import RemoteError, TransportError
from hotpath_agent.msclient.schemas import GraphQLRequest, GraphQLResponse
from hotpath_agent.samples.schemas import DataSample

logger = logging.getLogger(__name__)

COLLECT_DATA_MUTATION = """
mutation ($sample: DataSample!) {
	collectData(sample: $sample)
}
"""


class SubmissionClient:
    """Client for the GraphQL endpoint of the Mindsight API server"""

    def __init__(self, endpoint: str, timeout: float = 30.0):
        self.endpoint = endpoint
        self.timeout = timeout

    async def submit(
        self, query: str, variables: Dict[str, Any], token: str
    ) -> GraphQLResponse:
        """
        Send a GraphQL request to the API server.

        Args:
            query: GraphQL query or mutation string
            variables: Variables referenced by the query
            token: Bearer access token

        Returns:
            The parsed response envelope (error-free)

        Raises:
            TransportError: On connection failure, non-2xx status or a
                malformed response envelope
            RemoteError: If the response carries GraphQL errors
        """
        gql = GraphQLRequest(query=query, variables=variables)

        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Authorization": f"bearer {token}",
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.endpoint,
                    json=gql.model_dump(),
                    headers=headers,
                )
        except httpx.TimeoutException as e:
            raise TransportError(f"request timeout after {self.timeout} seconds: {e}") from e
        except httpx.HTTPError as e:
            raise TransportError(f"do http request: {e}") from e

        if response.status_code < 200 or response.status_code > 299:
            raise TransportError(
                f"response status: {response.status_code}, body: {response.text}",
                status_code=response.status_code,
            )

        try:
            gql_resp = GraphQLResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise TransportError(
                f"decode gql, response body: {response.text}: {e}",
                status_code=response.status_code,
            ) from e

        if gql_resp.errors:
            raise RemoteError(gql_resp.errors[0].message, errors=gql_resp.errors)

        return gql_resp

    async def submit_sample(self, sample: DataSample, token: str) -> GraphQLResponse:
        """Send one project/environment sample with the collectData mutation."""
        logger.debug(
            f"Submitting {len(sample.hotpaths)} hotpaths for project={sample.projectName}"
        )
        return await self.submit(
            COLLECT_DATA_MUTATION, {"sample": sample.to_variables()}, token
        )
