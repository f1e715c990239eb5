"""OpenRouter chat-completions client."""

import logging
from dataclasses import dataclass

import httpx

from food_scanner.domain.errors import ApiError, NetworkError
from food_scanner.services.chat import ChatClient, ChatMessage

_logger = logging.getLogger(__name__)


@dataclass
class HttpxOpenRouterClient(ChatClient):
    """HTTPX-backed client for an OpenRouter-style endpoint."""

    api_key: str
    api_url: str
    http_client: httpx.AsyncClient
    referer: str = "http://localhost"
    title: str = "AI Food Detection Camera"

    @classmethod
    def create(  # noqa: PLR0913
        cls,
        api_key: str,
        api_url: str,
        referer: str,
        title: str,
        timeout_seconds: float,
    ) -> "HttpxOpenRouterClient":
        """Create a client with a managed httpx session."""
        return cls(
            api_key=api_key,
            api_url=api_url,
            http_client=httpx.AsyncClient(timeout=timeout_seconds),
            referer=referer,
            title=title,
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
        """POST a chat completion and return the first choice's text."""
        payload = {
            "model": model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "top_p": top_p,
        }
        try:
            response = await self.http_client.post(
                self.api_url, headers=self._headers(), json=payload
            )
        except httpx.TransportError as exc:
            raise NetworkError(f"Failed to reach OpenRouter API: {exc}") from exc
        except httpx.HTTPError as exc:
            raise NetworkError(f"OpenRouter API request failed: {exc}") from exc
        if not response.is_success:
            raise ApiError(response.status_code, response.text)
        try:
            data = response.json()
        except ValueError as exc:
            raise ApiError(response.status_code, response.text) from exc
        content = _first_choice_content(data)
        if not content:
            raise ApiError(response.status_code, "No response content from OpenRouter API")
        return content

    async def test_connection(self) -> bool:
        """Check that the models listing answers with a 2xx status."""
        models_url = self.api_url.replace("/chat/completions", "/models")
        try:
            response = await self.http_client.get(models_url, headers=self._headers())
        except httpx.HTTPError:
            _logger.warning("Connection test failed", exc_info=True)
            return False
        return response.is_success

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self.referer,
            "X-Title": self.title,
        }


def _first_choice_content(data: object) -> str | None:
    if not isinstance(data, dict):
        return None
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    message = choices[0].get("message") if isinstance(choices[0], dict) else None
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    return content if isinstance(content, str) else None
