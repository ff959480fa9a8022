"""Middleware package for the agent."""

from hotpath_agent.middleware.request_id import RequestIDMiddleware

__all__ = ["RequestIDMiddleware"]
