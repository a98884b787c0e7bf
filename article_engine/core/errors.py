"""Exception types shared across the generation pipeline."""


class ArticleEngineError(Exception):
    """Base class for pipeline errors."""


class NotFoundError(ArticleEngineError):
    """Raised when a referenced topic, outline or article does not exist."""

    def __init__(self, entity: str, entity_id: object):
        super().__init__(f"{entity.capitalize()} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class UpstreamError(ArticleEngineError):
    """Raised when the model or embedding provider fails."""


class UpstreamTimeoutError(UpstreamError):
    """Raised when the model stops producing tokens for longer than the token timeout."""


class PersistenceError(ArticleEngineError):
    """Raised when a durable write fails."""


class UnsavedTopicError(ArticleEngineError):
    """Raised when a topic that was never persisted is used to start a stage."""
