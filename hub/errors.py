from __future__ import annotations

import json
from typing import Any, Dict, List, Tuple

from fastapi.responses import JSONResponse

INVALID_INPUT = "Invalid input."


def error_response(message: str, status_code: int = 400) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


class ValidationNormalizeMiddleware:
    """Turn FastAPI 422 validation responses into 400 with a short error body.

    Only the 422 body is buffered; every other response streams through.
    """

    def __init__(self, app: Any, *, message: str = INVALID_INPUT) -> None:
        self.app = app
        self.message = message

    async def __call__(self, scope: Dict[str, Any], receive: Any, send: Any) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        rewriting = False
        headers: List[Tuple[bytes, bytes]] = []

        async def send_wrapper(message: Dict[str, Any]) -> None:
            nonlocal rewriting, headers
            if message["type"] == "http.response.start":
                if message.get("status") != 422:
                    await send(message)
                    return
                rewriting = True
                headers = [
                    (key, value)
                    for key, value in message.get("headers", [])
                    if key.lower() not in {b"content-length", b"content-type"}
                ]
                return

            if not rewriting:
                await send(message)
                return

            if message["type"] == "http.response.body" and not message.get("more_body"):
                payload = json.dumps({"error": self.message}).encode("utf-8")
                headers.append((b"content-type", b"application/json"))
                headers.append((b"content-length", str(len(payload)).encode("latin-1")))
                await send(
                    {
                        "type": "http.response.start",
                        "status": 400,
                        "headers": headers,
                    }
                )
                await send({"type": "http.response.body", "body": payload})

        await self.app(scope, receive, send_wrapper)
