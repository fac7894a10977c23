import base64
import json
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from . import LLMError, LLMExecutor, LLMProviderNotAvailable

logger = logging.getLogger(__name__)

DEFAULT_URL = "https://api.openai.com/v1/chat/completions"
DEFAULT_MODEL = "gpt-4o-mini"


def extract_error_message(body: str) -> Optional[str]:
    """Pull ``"<type>: <code>: <message>"`` out of an OpenAI error body, if present.

    ``code`` carries values such as ``invalid_api_key`` that the usage guard
    needs to classify the failure.
    """
    try:
        root = json.loads(body)
    except (ValueError, TypeError):
        return None
    if not isinstance(root, dict):
        return None
    err = root.get("error")
    if not isinstance(err, dict):
        return None
    parts = [p for p in (err.get("type"), err.get("code"), err.get("message")) if isinstance(p, str) and p]
    return ": ".join(parts) or None


def build_messages(prompt: str, attachment: Optional[bytes]) -> List[Dict[str, Any]]:
    if attachment is None:
        return [{"role": "user", "content": prompt}]
    data_url = "data:image/jpeg;base64," + base64.b64encode(attachment).decode("ascii")
    return [
        {
            "role": "user",
            "content": [
                {"type": "text", "text": prompt},
                {"type": "image_url", "image_url": {"url": data_url, "detail": "auto"}},
            ],
        }
    ]


class OpenAIExecutor(LLMExecutor):
    """Non-streaming chat completions call.

    Non-2xx responses raise ``LLMError("OpenAI HTTP <status>: <detail>")`` so the
    usage guard can classify them from the message.
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_URL,
        timeout: float = 60.0,
    ):
        super().__init__("openai", base_url, api_key)
        self.model = model
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings) -> "OpenAIExecutor":
        return cls(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            base_url=settings.openai_base_url,
            timeout=settings.openai_timeout,
        )

    async def complete(self, prompt: str, attachment: Optional[bytes] = None) -> str:
        if not self.api_key:
            # Classified as a credential failure by the guard
            raise LLMError("Missing OPENAI_API_KEY (invalid_api_key)")

        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        payload = {
            "model": self.model,
            "messages": build_messages(prompt, attachment),
        }

        try:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.base_url, json=payload, headers=headers) as response:
                    raw = await response.text()
                    if not 200 <= response.status < 300:
                        detail = extract_error_message(raw) or raw[:1000]
                        raise LLMError(f"OpenAI HTTP {response.status}: {detail}")
        except aiohttp.ClientError as e:
            raise LLMProviderNotAvailable(f"Cannot connect to OpenAI: {e}")

        try:
            data = json.loads(raw)
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError):
            content = None
        if not content or not content.strip():
            raise LLMError("OpenAI returned an empty message")
        return content.strip()
