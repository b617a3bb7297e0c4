"""Abstract base for all Completion Service adapters."""

from abc import ABC, abstractmethod

from echo_chamber.errors import EchoChamberError
from echo_chamber.models import CompletionRequest, CompletionResponse, Role


class CompletionFailure(EchoChamberError):
    """Raised when a completion call fails (transport, service, or timeout)."""

    def __init__(self, service_name: str, message: str) -> None:
        self.service_name = service_name
        super().__init__(f"[{service_name}] {message}")


def to_chat_messages(request: CompletionRequest) -> list[dict[str, str]]:
    """Map role-tagged fragments to the user/assistant chat convention."""
    return [
        {"role": "assistant" if f.role is Role.ASSISTANT else "user", "content": f.text}
        for f in request.messages
    ]


class CompletionService(ABC):
    """Abstract base for all Completion Service adapters."""

    @abstractmethod
    def name(self) -> str:
        """Return the short service name (e.g. 'openai', 'claude')."""
        ...

    @abstractmethod
    def model_string(self) -> str:
        """Return the actual model identifier string."""
        ...

    @abstractmethod
    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """Generate text for a system prompt plus role-tagged fragments.

        Args:
            request: System prompt, ordered fragments, and sampling parameters.

        Returns:
            CompletionResponse with the generated text and call metadata.

        Raises:
            CompletionFailure: On API failure, timeout, or empty response.
        """
        ...
