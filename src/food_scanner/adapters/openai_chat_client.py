"""OpenAI SDK client pointed at an OpenAI-compatible endpoint."""

from dataclasses import dataclass

from openai import APIConnectionError, APIStatusError, AsyncOpenAI, OpenAIError

from food_scanner.domain.errors import ApiError, NetworkError
from food_scanner.services.chat import ChatClient, ChatMessage


@dataclass
class OpenAIChatClient(ChatClient):
    """Chat client backed by the OpenAI SDK."""

    client: AsyncOpenAI

    @classmethod
    def create(  # noqa: PLR0913
        cls,
        api_key: str,
        api_url: str,
        referer: str,
        title: str,
        timeout_seconds: float,
    ) -> "OpenAIChatClient":
        """Create a client whose base URL is derived from the completions URL."""
        return cls(
            client=AsyncOpenAI(
                # The SDK rejects an empty key; AnalysisService refuses to
                # send requests until the real key is configured.
                api_key=api_key or "unset",
                base_url=base_url_from_completions_url(api_url),
                default_headers={"HTTP-Referer": referer, "X-Title": title},
                timeout=timeout_seconds,
                max_retries=0,
            )
        )

    async def complete(  # noqa: PLR0913
        self,
        *,
        model: str,
        messages: list[ChatMessage],
        max_tokens: int,
        temperature: float,
        top_p: float,
    ) -> str:
        """Call chat.completions and return the first choice's text."""
        try:
            completion = await self.client.chat.completions.create(
                model=model,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature,
                top_p=top_p,
            )
        except APIStatusError as exc:
            raise ApiError(exc.status_code, exc.response.text) from exc
        except APIConnectionError as exc:
            raise NetworkError(f"Failed to reach OpenRouter API: {exc}") from exc
        except OpenAIError as exc:
            raise NetworkError(f"OpenRouter API request failed: {exc}") from exc
        content = completion.choices[0].message.content if completion.choices else None
        if not content:
            raise ApiError(200, "No response content from OpenRouter API")
        return content

    async def test_connection(self) -> bool:
        """List models to verify credentials."""
        try:
            await self.client.models.list()
        except OpenAIError:
            return False
        return True

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.client.close()


def base_url_from_completions_url(api_url: str) -> str:
    """Strip the ``/chat/completions`` suffix the SDK appends itself."""
    return api_url.rstrip("/").removesuffix("/chat/completions")
