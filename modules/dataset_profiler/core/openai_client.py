from __future__ import annotations

import json
from typing import Any, Dict, List
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from modules.dataset_profiler.core.config import ProfilerConfig


class AIClientError(RuntimeError):
    def __init__(self, message: str, *, status_code: int = 500) -> None:
        super().__init__(message)
        self.status_code = status_code


def _extract_content(data: Dict[str, Any]) -> str:
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise AIClientError("AI response did not include a message.") from exc
    if not isinstance(content, str):
        raise AIClientError("AI response did not include a message.")
    return content


def request_chat_completion(
    messages: List[Dict[str, str]],
    *,
    config: ProfilerConfig,
) -> str:
    if not config.ai_enabled:
        raise AIClientError("OpenAI API key not configured.")

    payload = json.dumps(
        {
            "model": config.ai_model,
            "messages": messages,
            "temperature": config.ai_temperature,
            "max_tokens": config.ai_max_tokens,
        }
    )
    req = Request(
        f"{config.ai_base_url}/chat/completions",
        data=payload.encode("utf-8"),
        headers={
            "Authorization": f"Bearer {config.ai_api_key}",
            "Content-Type": "application/json",
        },
        method="POST",
    )

    try:
        with urlopen(req, timeout=config.ai_timeout_seconds) as resp:
            raw = resp.read().decode("utf-8")
    except HTTPError as exc:
        raise AIClientError(
            f"AI request failed with HTTP {exc.code}.", status_code=exc.code
        ) from exc
    except (URLError, TimeoutError) as exc:
        raise AIClientError(f"AI request failed: {exc}", status_code=502) from exc

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise AIClientError("AI response was not valid JSON.", status_code=502) from exc
    return _extract_content(data)
