from __future__ import annotations

from hub.engine import build_app

app = build_app()
