from abc import ABC, abstractmethod
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .usage_guard import BlockReason, FailureKind


class LLMExecutor(ABC):
    """Performs one outbound LLM call. Raises on any failure."""

    def __init__(self, name: str, base_url: str, api_key: Optional[str] = None):
        self.name = name
        self.base_url = base_url
        self.api_key = api_key

    @abstractmethod
    async def complete(self, prompt: str, attachment: Optional[bytes] = None) -> str:
        pass


class LLMError(Exception):
    pass


class LLMProviderNotAvailable(LLMError):
    pass


class LLMBlockedError(LLMError):
    """The usage guard refused the call; nothing was sent."""

    def __init__(self, reason: "BlockReason"):
        super().__init__(reason.message)
        self.reason = reason


class LLMCallFailed(LLMError):
    """An outbound call failed and was recorded by the usage guard."""

    def __init__(self, message: str, kind: "FailureKind"):
        super().__init__(message)
        self.kind = kind


class LLMRateLimitError(LLMCallFailed):
    pass


class LLMAuthenticationError(LLMCallFailed):
    pass


class LLMTransientError(LLMCallFailed):
    pass
