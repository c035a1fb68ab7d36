import logging

import httpx

from config import OPENROUTER_MODEL, LLM_TIMEOUT
from providers.base import BaseProvider

logger = logging.getLogger(__name__)


class OpenRouterProvider(BaseProvider):
    """Provider for OpenRouter chat completions using standard httpx."""

    def __init__(self, api_key: str, default_model: str = OPENROUTER_MODEL,
                 transport: httpx.AsyncBaseTransport | None = None):
        self.api_key = api_key
        self.transport = transport
        self.default_model = default_model
        self.endpoint = "https://openrouter.ai/api/v1/chat/completions"

    @property
    def name(self) -> str:
        return "openrouter"

    def _result(self, model: str, text: str | None = None, error: str | None = None) -> dict:
        return {
            "text": text,
            "provider": self.name,
            "model": model,
            "status": "failed" if error else "success",
            "error": error,
        }

    async def chat(self, messages: list[dict], model: str | None = None) -> dict:
        used_model = model or self.default_model
        try:
            headers = {
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json"
            }
            body = {
                "model": used_model,
                "messages": messages,
            }

            async with httpx.AsyncClient(timeout=LLM_TIMEOUT, transport=self.transport) as client:
                response = await client.post(self.endpoint, headers=headers, json=body)
                if response.status_code >= 400:
                    logger.error("OpenRouter returned %s: %s", response.status_code, response.text[:500])
                    return self._result(used_model, error=f"HTTP {response.status_code}")
                data = response.json()

            choices = data.get("choices") or []
            text = (choices[0].get("message") or {}).get("content") if choices else None
            return self._result(used_model, text=text)
        except httpx.TimeoutException:
            logger.error("OpenRouter request timed out after %ss", LLM_TIMEOUT)
            return self._result(used_model, error="Timeout")
        except (httpx.HTTPError, ValueError) as e:
            logger.error("OpenRouter request failed: %s", e)
            return self._result(used_model, error=str(e))
