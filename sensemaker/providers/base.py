"""Abstract base for text-generation model providers."""

from abc import ABC, abstractmethod

from sensemaker.models import ModelResponse

# Every call parses the reply as a JSON array.
JSON_ARRAY_INSTRUCTION = (
    "You analyze public comments. Reply with a single JSON array and nothing else: "
    "no prose, no markdown."
)


class ProviderError(Exception):
    """Raised when a provider call fails or returns unusable output."""

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"[{provider_name}] {message}")


class AIProvider(ABC):
    """Abstract base for all model providers."""

    @abstractmethod
    def name(self) -> str:
        """Return the configured provider name (e.g. 'vertex', 'claude')."""
        ...

    @abstractmethod
    def model_string(self) -> str:
        """Return the actual model identifier string."""
        ...

    @abstractmethod
    async def generate(self, prompt: str) -> ModelResponse:
        """Generate a response for the given prompt.

        Args:
            prompt: The full prompt text to send, unmodified.

        Returns:
            ModelResponse dataclass with content and metadata.

        Raises:
            ProviderError: On API failure, timeout, or empty response.
        """
        ...
