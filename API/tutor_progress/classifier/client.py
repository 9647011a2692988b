from __future__ import annotations

from abc import ABC, abstractmethod

import httpx

from tutor_progress.core.errors import ClassifierTimeout, ClassifierTransportError
from tutor_progress.core.settings import settings


class BaseClassifierClient(ABC):
    provider_name: str

    @abstractmethod
    async def classify(self, prompt: str) -> str | None:
        raise NotImplementedError


class OllamaClassifierClient(BaseClassifierClient):
    """Non-streaming Ollama chat call with JSON output and deterministic decoding."""

    provider_name = "ollama"

    def __init__(
        self,
        base_url: str | None = None,
        model_name: str | None = None,
        timeout_seconds: float | None = None,
        insecure_tls: bool | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.classifier_base_url).rstrip("/")
        self.model_name = model_name or settings.classifier_model
        self.timeout_seconds = timeout_seconds or settings.classifier_timeout_seconds
        self.insecure_tls = settings.classifier_insecure_tls if insecure_tls is None else insecure_tls
        self._transport = transport

    def _payload(self, prompt: str) -> dict:
        return {
            "model": self.model_name,
            "stream": False,
            "format": "json",
            "options": {"temperature": 0},
            "messages": [{"role": "user", "content": prompt}],
        }

    async def classify(self, prompt: str) -> str | None:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout_seconds,
                verify=not self.insecure_tls,
                transport=self._transport,
            ) as client:
                response = await client.post("/api/chat", json=self._payload(prompt))
                response.raise_for_status()
                body = response.json()
        except httpx.TimeoutException as exc:
            raise ClassifierTimeout(f"Classifier timeout after {self.timeout_seconds}s: {exc}") from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise ClassifierTransportError(f"Classifier request failed: {exc}") from exc

        message = body.get("message") if isinstance(body, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        return content if isinstance(content, str) else None


def get_classifier_client() -> BaseClassifierClient:
    return OllamaClassifierClient()
