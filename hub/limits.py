from __future__ import annotations

import asyncio
import json
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Tuple, TypeVar

Number = TypeVar("Number", int, float)

DEFAULT_MAX_BODY_BYTES = 5_000_000
DEFAULT_TIMEOUT_SECONDS = 15.0

# Paths with any of these segments bypass the limits.
UNLIMITED_SEGMENTS = frozenset({"docs", "openapi.json", "static", "favicon.ico"})


def _positive(raw: str | None, default: Number | None, cast: Callable[[str], Number]) -> Number | None:
    """Parse a positive number; blank or junk keeps the default, ``<= 0`` disables."""
    text = (raw or "").strip()
    if not text:
        return default
    try:
        value = cast(text)
    except ValueError:
        return default
    return value if value > 0 else None


def _parse_int(raw: str | None, default: int | None) -> int | None:
    return _positive(raw, default, int)


def _parse_mapping(raw: str | None) -> Dict[str, int]:
    """Read ``module=value,module=value`` overrides, ignoring malformed pairs."""
    mapping: Dict[str, int] = {}
    for pair in (raw or "").split(","):
        name, sep, value = pair.partition("=")
        name = name.strip()
        parsed = _parse_int(value, None) if sep and name else None
        if parsed is not None:
            mapping[name] = parsed
    return mapping


def max_body_bytes() -> int | None:
    return _parse_int(os.getenv("DATA_AGENT_MAX_BODY_BYTES"), DEFAULT_MAX_BODY_BYTES)


def request_timeout_seconds() -> float | None:
    return _positive(
        os.getenv("DATA_AGENT_REQUEST_TIMEOUT_SECONDS"), DEFAULT_TIMEOUT_SECONDS, float
    )


@dataclass(frozen=True)
class RequestLimits:
    max_body: int | None = DEFAULT_MAX_BODY_BYTES
    timeout_seconds: float | None = DEFAULT_TIMEOUT_SECONDS
    module_max_body: Dict[str, int] = field(default_factory=dict)
    module_timeouts: Dict[str, int] = field(default_factory=dict)

    def for_module(self, module: str | None) -> Tuple[int | None, float | None]:
        if not module:
            return self.max_body, self.timeout_seconds
        return (
            self.module_max_body.get(module, self.max_body),
            self.module_timeouts.get(module, self.timeout_seconds),
        )


def load_limits() -> RequestLimits:
    return RequestLimits(
        max_body=max_body_bytes(),
        timeout_seconds=request_timeout_seconds(),
        module_max_body=_parse_mapping(os.getenv("DATA_AGENT_MODULE_MAX_BODY_BYTES")),
        module_timeouts=_parse_mapping(os.getenv("DATA_AGENT_MODULE_TIMEOUTS")),
    )


def resolve_module(path: str, mount_map: Dict[str, str]) -> str | None:
    if not path.startswith("/"):
        path = "/" + path
    for mount in sorted(mount_map, key=len, reverse=True):
        if path == mount or path.startswith(mount + "/"):
            return mount_map[mount]
    return None


def _declared_length(scope: Dict[str, Any]) -> int | None:
    for key, value in scope.get("headers", []):
        if key.lower() == b"content-length":
            text = value.decode("latin-1")
            return int(text) if text.isdigit() else None
    return None


async def _send_error(send: Any, status_code: int, message: str) -> None:
    body = json.dumps({"error": message}).encode("utf-8")
    await send(
        {
            "type": "http.response.start",
            "status": status_code,
            "headers": [
                (b"content-type", b"application/json"),
                (b"content-length", str(len(body)).encode("latin-1")),
            ],
        }
    )
    await send({"type": "http.response.body", "body": body})


class _BodyTooLarge(Exception):
    pass


class RequestLimitsMiddleware:
    """Cap upload size and request duration before a module sees the body.

    Limits resolve per mounted module first, then fall back to the global
    values; ``None`` disables a limit.
    """

    def __init__(self, app: Any, *, mount_map: Dict[str, str], limits: RequestLimits) -> None:
        self.app = app
        self.mount_map = mount_map
        self.limits = limits

    async def __call__(self, scope: Dict[str, Any], receive: Any, send: Any) -> None:
        path = scope.get("path", "")
        if scope.get("type") != "http" or UNLIMITED_SEGMENTS.intersection(path.split("/")):
            await self.app(scope, receive, send)
            return

        max_body, timeout_seconds = self.limits.for_module(
            resolve_module(path, self.mount_map)
        )
        if max_body is None and timeout_seconds is None:
            await self.app(scope, receive, send)
            return

        declared = _declared_length(scope)
        if max_body is not None and declared is not None and declared > max_body:
            await _send_error(send, 413, "Payload too large.")
            return

        received = 0
        started = False

        async def counting_receive() -> Dict[str, Any]:
            nonlocal received
            message = await receive()
            if message.get("type") == "http.request":
                received += len(message.get("body", b""))
                if max_body is not None and received > max_body:
                    raise _BodyTooLarge()
            return message

        async def tracking_send(message: Dict[str, Any]) -> None:
            nonlocal started
            started = started or message.get("type") == "http.response.start"
            await send(message)

        try:
            await asyncio.wait_for(
                self.app(scope, counting_receive, tracking_send), timeout=timeout_seconds
            )
        except _BodyTooLarge:
            if not started:
                await _send_error(send, 413, "Payload too large.")
        except asyncio.TimeoutError:
            if not started:
                await _send_error(send, 504, "Request timed out.")
