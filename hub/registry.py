from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict

import yaml

MODULES_PATH = Path(__file__).parent.parent / "modules"
MANIFEST_NAME = "module.yaml"

logger = logging.getLogger(__name__)


def normalize_manifest(data: Dict[str, Any], module_dir: Path) -> Dict[str, Any] | None:
    """Fill in slug, mount and visibility defaults for a module manifest.

    A manifest without ``name`` is not a module. The mount defaults to the
    slug (the name with dashes) and always starts with ``/``.
    """
    name = data.get("name")
    if not name:
        return None

    slug = data.get("slug") or name.replace("_", "-")
    mount = "/" + str(data.get("mount") or slug).lstrip("/")
    return {
        **data,
        "name": name,
        "slug": slug,
        "mount": mount,
        "public": data.get("public") is not False,
        "path": module_dir,
    }


def read_manifest(module_dir: Path) -> Dict[str, Any] | None:
    manifest = module_dir / MANIFEST_NAME
    if not manifest.is_file():
        return None
    with manifest.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        logger.warning("Ignoring %s: manifest is not a mapping", manifest)
        return None
    return normalize_manifest(data, module_dir)


def load_modules(modules_path: Path = MODULES_PATH) -> Dict[str, Dict[str, Any]]:
    modules: Dict[str, Dict[str, Any]] = {}
    if not modules_path.is_dir():
        return modules

    for module_dir in sorted(path for path in modules_path.iterdir() if path.is_dir()):
        meta = read_manifest(module_dir)
        if meta is None:
            continue
        if meta["name"] in modules:
            logger.warning("Duplicate module name %s in %s", meta["name"], module_dir)
            continue
        modules[meta["name"]] = meta
    return modules
