import importlib
import pkgutil
from types import ModuleType

from fastapi import APIRouter, FastAPI
from loguru import logger


def _iter_modules(package: ModuleType) -> list[ModuleType]:
    modules: list[ModuleType] = []
    for info in pkgutil.walk_packages(package.__path__, prefix=f"{package.__name__}."):
        if info.ispkg:
            continue
        modules.append(importlib.import_module(info.name))
    return modules


def discover_routers(package_name: str = "cardclash.api") -> list[APIRouter]:
    """Collect the module-level ``router`` of every module below ``package_name``.

    Modules are visited in name order so the OpenAPI document is stable.
    """
    package = importlib.import_module(package_name)
    if not hasattr(package, "__path__"):
        logger.warning(f"Cannot scan {package_name} for routers as it's not a package")
        return []

    routers: list[APIRouter] = []
    for module in sorted(_iter_modules(package), key=lambda m: m.__name__):
        router = getattr(module, "router", None)
        if isinstance(router, APIRouter):
            routers.append(router)
            logger.info(f"Discovered router in {module.__name__}")
    return routers


def register_routers(app: FastAPI, prefix: str = "/api") -> None:
    for router in discover_routers():
        app.include_router(router, prefix=prefix)
