"""
Exception taxonomy for collaborator failures.

Adapters raise these; the pipeline entry points catch them so callers always
receive a (possibly empty) list.
"""
from typing import Optional


class PipelineError(Exception):
    """Base class for ingredient pipeline errors."""


class RecognitionFailure(PipelineError):
    """Vision recognition service unreachable or returned an error."""


class SearchFailure(PipelineError):
    """Reference search failed for a single query."""

    def __init__(self, query: str, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.query = query
        self.status = status


class AuthFailure(SearchFailure):
    """Reference search rejected the credentials (401/403)."""
