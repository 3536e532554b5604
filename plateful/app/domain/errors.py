from __future__ import annotations

from typing import Optional, Sequence

from plateful.services.types import Intent


class RecipeGenerationError(Exception):
    pass


class InvalidRequestError(RecipeGenerationError):
    pass


class NotFoundError(RecipeGenerationError):
    pass


class NoMessagesError(NotFoundError):
    def __init__(self, conversation_id: str):
        super().__init__(f"No messages found in conversation {conversation_id}")
        self.conversation_id = conversation_id


class ConversationNotFoundError(NotFoundError):
    def __init__(self, conversation_id: str):
        super().__init__(f"Conversation not found: {conversation_id}")
        self.conversation_id = conversation_id


class RecipeNotFoundError(NotFoundError):
    def __init__(self, recipe_id: str):
        super().__init__(f"Recipe not found: {recipe_id}")
        self.recipe_id = recipe_id


class ServiceUnavailableError(RecipeGenerationError):
    def __init__(self, component: str, reason: str = "not configured"):
        super().__init__(f"{component} unavailable: {reason}")
        self.component = component
        self.reason = reason


class OffTopicError(RecipeGenerationError):
    def __init__(self, intent: Intent):
        super().__init__("Conversation is not about cooking or recipes")
        self.intent = intent


class NoCandidatesError(RecipeGenerationError):
    def __init__(self, query: str):
        super().__init__(f"No candidate recipe pages found for: {query}")
        self.query = query


class AllCandidatesExhaustedError(RecipeGenerationError):
    def __init__(self, attempted_urls: Sequence[str], last_error: Optional[Exception]):
        reason = str(last_error) if last_error else "unknown error"
        super().__init__(
            f"All {len(attempted_urls)} candidate(s) failed; last error: {reason}"
        )
        self.attempted_urls = list(attempted_urls)
        self.last_error = last_error


class RepositoryError(RecipeGenerationError):
    def __init__(self, operation: str, reason: str):
        super().__init__(f"Repository operation '{operation}' failed: {reason}")
        self.operation = operation
        self.reason = reason
