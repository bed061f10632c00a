"""Route modules, imported lazily by the app factory."""
from __future__ import annotations

import importlib
from typing import List

from fastapi import APIRouter

# Module paths that provide a ``router`` attribute.
_ROUTER_MODULES = [
    "stdc_engine.api.routers.analysis",
    "stdc_engine.api.routers.health",
]


def all_routers() -> List[APIRouter]:
    """Import and return every route module's router."""
    return [importlib.import_module(mod_path).router for mod_path in _ROUTER_MODULES]
