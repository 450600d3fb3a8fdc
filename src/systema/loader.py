"""Loading component instances from their source files."""

import hashlib
import importlib.util
import inspect
import sys
from pathlib import Path
from types import ModuleType
from typing import Any, Optional

import structlog

from systema.errors import ComponentNotLoadableError

__all__ = ["Loader", "load_source_file"]

logger = structlog.get_logger(__name__)


class Loader:
    """Default loader: imports a component's module and instantiates its class.

    The module is imported from the component's file under the component's module
    name, reusing ``sys.modules`` when it was imported from the same file. The class looked up
    is the camelized last segment of the component key (``articles.create_article``
    gives ``CreateArticle``).

    Classes defining ``instance`` as a classmethod or staticmethod are treated as
    singletons: ``instance()`` is called instead of the class itself.
    """

    @classmethod
    def require(cls, component) -> ModuleType:
        """Import the component's module, or return it when imported already.

        A module cached under the component's module name is only reused when it
        was loaded from the component's file. When the name belongs to another
        module (a stdlib module, or the same file name under another root), the
        file is imported under a name qualified by its path instead.
        """
        file_path = Path(component.file_path).resolve()
        module_name = component.module_name
        module = sys.modules.get(module_name)
        if module is not None and _module_file(module) == file_path:
            return module

        if module is not None or _stdlib_name(module_name):
            module_name = _unique_module_name(module_name, file_path)
            module = sys.modules.get(module_name)
            if module is not None:
                return module

        spec = importlib.util.spec_from_file_location(module_name, file_path)
        if spec is None or spec.loader is None:
            raise ImportError(f"Cannot import {module_name} from {file_path}")

        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except BaseException:
            del sys.modules[module_name]
            raise

        logger.debug("component.module_loaded", key=component.key, module=module_name)
        return module

    @classmethod
    def call(cls, component, *args, **kwargs) -> Any:
        constant = cls.constant(component)
        if cls.singleton(constant):
            return constant.instance(*args, **kwargs)
        return constant(*args, **kwargs)

    @classmethod
    def constant(cls, component) -> type:
        """Return the component's class.

        Raises:
            ComponentNotLoadableError: If the module does not define the class.
        """
        module = cls.require(component)
        class_name = component.class_name
        try:
            return getattr(module, class_name)
        except AttributeError as exc:
            candidates = [
                name for name, value in vars(module).items() if inspect.isclass(value)
            ]
            raise ComponentNotLoadableError(component, class_name, candidates) from exc

    @staticmethod
    def singleton(constant: type) -> bool:
        return isinstance(
            inspect.getattr_static(constant, "instance", None), (classmethod, staticmethod)
        )


def _module_file(module: ModuleType) -> Optional[Path]:
    file = getattr(module, "__file__", None)
    return Path(file).resolve() if file else None


def _stdlib_name(module_name: str) -> bool:
    return module_name.split(".")[0] in sys.stdlib_module_names


def _unique_module_name(module_name: str, file_path: Path) -> str:
    digest = hashlib.sha1(str(file_path).encode("utf-8")).hexdigest()[:12]
    return f"_systema_components.{digest}.{module_name}"


def load_source_file(path: Path, module_name: str, **module_globals) -> ModuleType:
    """Execute a Python source file as a fresh module.

    ``module_globals`` are bound in the module before its code runs, so that
    registration files can refer to e.g. the ``container`` without importing it.
    The file is executed again on every call.
    """
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load {path}")

    module = importlib.util.module_from_spec(spec)
    module.__dict__.update(module_globals)
    sys.modules[module_name] = module
    spec.loader.exec_module(module)

    logger.debug("source_file.loaded", path=str(path), module=module_name)
    return module
