"""Chat-completions interface shared by the LLM adapters."""

from typing import Protocol

ChatMessage = dict[str, object]


class ChatClient(Protocol):
    """Interface for an OpenAI-compatible chat-completions endpoint."""

    async def complete(  # noqa: PLR0913
        self,
        *,
        model: str,
        messages: list[ChatMessage],
        max_tokens: int,
        temperature: float,
        top_p: float,
    ) -> str:
        """Return the text of the first choice.

        Raises ``ApiError`` for non-2xx answers and ``NetworkError`` when the
        endpoint cannot be reached.
        """

    async def test_connection(self) -> bool:
        """Return whether the endpoint accepts the configured credentials."""

    async def close(self) -> None:
        """Release the underlying HTTP session."""


def system_message(text: str) -> ChatMessage:
    return {"role": "system", "content": text}


def user_message(text: str, image_base64: str | None = None) -> ChatMessage:
    """Build a user message, optionally carrying a JPEG as a high-detail data URL."""
    if image_base64 is None:
        return {"role": "user", "content": text}
    return {
        "role": "user",
        "content": [
            {"type": "text", "text": text},
            {
                "type": "image_url",
                "image_url": {
                    "url": f"data:image/jpeg;base64,{image_base64}",
                    "detail": "high",
                },
            },
        ],
    }
