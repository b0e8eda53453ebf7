from __future__ import annotations

import logging
import os
from pathlib import Path

from fastapi.templating import Jinja2Templates


def shared_templates_dir(root_dir: Path) -> Path:
    env_path = os.getenv("DATA_AGENT_SHARED_TEMPLATES")
    if env_path:
        return Path(env_path)
    return root_dir / "hub" / "templates"


def configure_templates(templates: Jinja2Templates) -> None:
    templates.env.auto_reload = True
    templates.env.cache = {}


def configure_logging() -> None:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
