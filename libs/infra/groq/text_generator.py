"""Groq chat completion adapter (OpenAI-compatible endpoint)."""

from libs.core.application.contracts import RemoteServiceError, TextGenerator
from libs.infra.http_json import request_json

SERVICE_NAME = "groq"
GROQ_CHAT_URL = "https://api.groq.com/openai/v1/chat/completions"
DEFAULT_MODEL = "openai/gpt-oss-120b"


class GroqTextGenerator(TextGenerator):
    """Single-turn text generation."""

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        url: str = GROQ_CHAT_URL,
        timeout: float = 30.0,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._url = url
        self._timeout = timeout

    def generate(self, prompt: str) -> str:
        if not self._api_key:
            raise RemoteServiceError(SERVICE_NAME, "GROQ_API_KEY is not set")
        payload = request_json(
            self._url,
            service=SERVICE_NAME,
            method="POST",
            payload={
                "model": self._model,
                "messages": [{"role": "user", "content": prompt}],
            },
            headers={"Authorization": f"Bearer {self._api_key}"},
            timeout=self._timeout,
        )
        try:
            return str(payload["choices"][0]["message"]["content"] or "")
        except (KeyError, IndexError, TypeError) as error:
            raise RemoteServiceError(SERVICE_NAME, "unexpected response shape") from error
