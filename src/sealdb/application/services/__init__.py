"""Application services implementing the query and mutation operations."""

from sealdb.application.services.mutation_pipeline import MutationPipeline
from sealdb.application.services.query_service import QueryService

__all__ = ["MutationPipeline", "QueryService"]
