"""
Error taxonomy for the recommendation engine.

Degraded signals (missing embeddings, absent preference vectors, no
neighbors) are not errors and never raise; they surface as empty or
fallback results.
"""


class MovieRecsError(Exception):
    """Base class for engine errors."""


class NotFoundError(MovieRecsError):
    """Unknown user, movie or rating. Surfaced to the caller, never retried."""

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class InvalidInputError(MovieRecsError):
    """Rejected input such as an out-of-range rating or a vector dimension mismatch."""


class TransientDependencyError(MovieRecsError):
    """A collaborator timed out, rate limited us or failed; the caller may retry."""
