import importlib
import pkgutil
from types import ModuleType
from typing import Iterable, List

from dependency_injector import containers


def import_submodules(package_name: str) -> ModuleType:
    """Import a package and every submodule below it."""
    package = importlib.import_module(package_name)
    if not hasattr(package, "__path__"):
        return package
    for module_info in pkgutil.walk_packages(package.__path__, prefix=f"{package.__name__}."):
        importlib.import_module(module_info.name)
    return package


def wire_packages(
    container: containers.DeclarativeContainer,
    package_names: Iterable[str],
    extra_modules: Iterable[str] = (),
) -> None:
    """Wire `Provide[...]` markers in the given packages (recursively) and extra modules."""
    packages: List[ModuleType] = [import_submodules(name) for name in package_names]
    modules: List[ModuleType] = [importlib.import_module(name) for name in extra_modules]
    container.wire(packages=packages, modules=modules)
