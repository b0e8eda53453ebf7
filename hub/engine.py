from __future__ import annotations

import logging
from importlib import import_module
from pathlib import Path
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from hub.errors import ValidationNormalizeMiddleware
from hub.limits import RequestLimitsMiddleware, load_limits
from hub.registry import MODULES_PATH, load_modules
from hub.settings import configure_logging, configure_templates

logger = logging.getLogger(__name__)


def import_attr(path: str) -> Any:
    if ":" not in path:
        raise ValueError(f"Invalid entrypoint '{path}'. Expected module:attr.")
    module_path, attr = path.split(":", 1)
    module = import_module(module_path)
    return getattr(module, attr)


def public_modules(modules: Dict[str, Dict[str, Any]]) -> list[Dict[str, Any]]:
    items = [module for module in modules.values() if module.get("public", True)]
    items.sort(key=lambda item: item.get("title") or item.get("name", ""))
    return items


def build_app(modules_path: Path = MODULES_PATH) -> FastAPI:
    configure_logging()
    app = FastAPI(title="Data Agent")

    templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
    configure_templates(templates)

    modules = load_modules(modules_path)
    mount_map: Dict[str, str] = {}

    @app.get("/", response_class=HTMLResponse)
    def hub_index(request: Request):
        base_path = request.scope.get("root_path", "").rstrip("/")
        return templates.TemplateResponse(
            request,
            "index.html",
            {
                "modules": public_modules(modules),
                "base_path": base_path,
            },
        )

    @app.get("/api/modules")
    def hub_modules():
        return {
            "modules": [
                {
                    "name": module["name"],
                    "title": module.get("title") or module["name"],
                    "description": module.get("description") or "",
                    "mount": module["mount"],
                }
                for module in public_modules(modules)
            ]
        }

    for meta in modules.values():
        entrypoints = meta.get("entrypoints") or {}
        api_entry = entrypoints.get("api")
        if not api_entry:
            continue

        try:
            subapp = import_attr(api_entry)
        except (ImportError, AttributeError, ValueError):
            logger.exception("Could not import module app %s", api_entry)
            continue

        app.mount(meta["mount"], subapp)
        mount_map[meta["mount"].rstrip("/")] = meta["name"]
        logger.info("Mounted module %s at %s", meta["name"], meta["mount"])

    app.add_middleware(RequestLimitsMiddleware, mount_map=mount_map, limits=load_limits())
    app.add_middleware(ValidationNormalizeMiddleware)
    return app
