"""Feature modules mounted under the auth API.

Each package that exposes a ``router`` in its ``__init__`` is picked up
by :func:`discover_modules`. Packages without one (``users``) only
provide models and repositories to the others.
"""

import logging
from importlib import import_module
from pathlib import Path

from fastapi import APIRouter


logger = logging.getLogger(__name__)


def discover_modules() -> list[APIRouter]:
    """Import every module package and collect its router.

    Returns:
        Routers in module name order.
    """
    modules_dir = Path(__file__).parent
    routers: list[APIRouter] = []

    for path in sorted(modules_dir.iterdir()):
        if not path.is_dir() or path.name.startswith("_"):
            continue
        module = import_module(f"{__name__}.{path.name}")
        router = getattr(module, "router", None)
        if router is not None:
            routers.append(router)
            logger.info("Loaded module: %s", path.name)

    return routers
