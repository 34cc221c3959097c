"""Feature modules, mounted under ``/api/v1`` by auto-discovery.

A module is a subpackage whose ``__init__`` defines ``router`` (an
``APIRouter`` with its own prefix) and ``__module_info__``. Packages
without a router, such as ``users``, only contribute models and repos.
"""

from importlib import import_module
from pathlib import Path

import structlog
from fastapi import APIRouter


logger = structlog.get_logger()


def discover_modules() -> list[APIRouter]:
    """Import every module package and collect the routers they expose.

    Returns:
        Routers in package-name order.
    """
    routers: list[APIRouter] = []

    for path in sorted(Path(__file__).parent.iterdir()):
        if not path.is_dir() or path.name.startswith("_"):
            continue
        module = import_module(f"taller.modules.{path.name}")
        router = getattr(module, "router", None)
        if router is not None:
            routers.append(router)
            logger.debug("module_loaded", module=path.name, prefix=router.prefix)

    return routers
