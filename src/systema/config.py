"""Container configuration: component dirs, namespaces and container settings."""

import os
from pathlib import Path
from typing import Any, Callable, Iterator, Optional, Union

from systema.auto_registrar import AutoRegistrar
from systema.errors import (
    ComponentDirAlreadyAddedError,
    ConfigFrozenError,
    NamespaceAlreadyAddedError,
)
from systema.identifier import KEY_SEPARATOR, PATH_SEPARATOR
from systema.importer import Importer
from systema.inflector import Inflector
from systema.loader import Loader
from systema.manifest_registrar import ManifestRegistrar
from systema.plugins import default_plugins
from systema.provider_registrar import ProviderRegistrar
from systema.provider_source_registry import default_provider_sources

__all__ = [
    "Namespace",
    "Namespaces",
    "ComponentDirConfig",
    "ComponentDirs",
    "ContainerConfig",
]


class Namespace:
    """A namespace within a component dir, mapping a path prefix to key and module prefixes.

    Attributes:
        path: The path prefix within the component dir, or ``None`` for the root.
        key: The leading key namespace for components found under ``path``, or
            ``None`` for components keyed without a namespace.
        const: The leading module namespace used when importing components, or
            ``None``.
    """

    ROOT_PATH = None

    def __init__(self, path: Optional[str], key: Optional[str], const: Optional[str]):
        self.path = path
        if key and key == path:
            key = key.replace(PATH_SEPARATOR, KEY_SEPARATOR)
        self.key = key
        self.const = const

    @classmethod
    def default_root(cls) -> "Namespace":
        return cls(path=cls.ROOT_PATH, key=None, const=None)

    @property
    def root(self) -> bool:
        return self.path == self.ROOT_PATH

    @property
    def has_path(self) -> bool:
        return not self.root

    def __eq__(self, other):
        if not isinstance(other, Namespace):
            return NotImplemented
        return (self.path, self.key, self.const) == (other.path, other.key, other.const)

    def __hash__(self):
        return hash((self.path, self.key, self.const))

    def __repr__(self):
        return f"Namespace(path={self.path!r}, key={self.key!r}, const={self.const!r})"


class Namespaces:
    """The ordered namespaces of a component dir.

    Iteration yields the namespaces in the order they were added, followed by a
    default root namespace when no root namespace was added explicitly.
    """

    def __init__(self):
        self._namespaces: dict[Optional[str], Namespace] = {}

    def copy(self) -> "Namespaces":
        copied = Namespaces()
        copied._namespaces = dict(self._namespaces)
        return copied

    def namespace(self, path: Optional[str]) -> Optional[Namespace]:
        return self._namespaces.get(path)

    __getitem__ = namespace

    @property
    def root(self) -> Optional[Namespace]:
        return self._namespaces.get(Namespace.ROOT_PATH)

    def add(self, path: Optional[str], key: Any = ..., const: Any = ...) -> Namespace:
        """Add a namespace for a path; ``key`` and ``const`` default to the path.

        Raises:
            NamespaceAlreadyAddedError: If a namespace for the path exists.
        """
        if path in self._namespaces:
            raise NamespaceAlreadyAddedError(path)
        namespace = Namespace(
            path=path,
            key=path if key is ... else key,
            const=path if const is ... else const,
        )
        self._namespaces[path] = namespace
        return namespace

    def add_root(self, key: Optional[str] = None, const: Optional[str] = None) -> Namespace:
        return self.add(Namespace.ROOT_PATH, key=key, const=const)

    def delete(self, path: Optional[str]) -> Optional[Namespace]:
        return self._namespaces.pop(path, None)

    def delete_root(self) -> Optional[Namespace]:
        return self.delete(Namespace.ROOT_PATH)

    @property
    def paths(self) -> list[Optional[str]]:
        return list(self._namespaces)

    def __len__(self):
        return len(self._namespaces)

    def to_list(self) -> list[Namespace]:
        namespaces = list(self._namespaces.values())
        if not any(namespace.root for namespace in namespaces):
            namespaces.append(Namespace.default_root())
        return namespaces

    def __iter__(self) -> Iterator[Namespace]:
        return iter(self.to_list())

    def __eq__(self, other):
        if not isinstance(other, Namespaces):
            return NotImplemented
        return list(self._namespaces.values()) == list(other._namespaces.values())


_DIR_DEFAULTS: dict[str, Callable[[], Any]] = {
    "auto_register": lambda: True,
    "instance": lambda: None,
    "loader": lambda: Loader,
    "memoize": lambda: False,
    "namespaces": Namespaces,
    "add_to_load_path": lambda: True,
}


class ComponentDirConfig:
    """Configuration for a single component dir.

    Settings:
        auto_register: ``True``/``False``, or a callable receiving a component and
            returning whether it should be registered.
        memoize: ``True``/``False``, or a callable receiving a component.
        loader: The loader class used to instantiate components.
        instance: An optional callable receiving a component and returning its
            instance, bypassing the loader.
        namespaces: The dir's :class:`Namespaces`.
        add_to_load_path: Whether the dir is added to ``sys.path``.
    """

    SETTINGS = tuple(_DIR_DEFAULTS)

    def __init__(self, path: Optional[str], **settings):
        object.__setattr__(self, "path", path)
        object.__setattr__(self, "_values", {})
        for name, value in settings.items():
            setattr(self, name, value)

    def __getattr__(self, name):
        if name not in _DIR_DEFAULTS:
            raise AttributeError(name)
        values = self.__dict__["_values"]
        if name == "namespaces" and name not in values:
            # stored on first access so in-place additions are kept
            values[name] = Namespaces()
        if name in values:
            return values[name]
        return _DIR_DEFAULTS[name]()

    def __setattr__(self, name, value):
        if name not in _DIR_DEFAULTS:
            raise AttributeError(f"Unknown component dir setting: {name!r}")
        self._values[name] = value

    def configured(self, name: str) -> bool:
        if name == "namespaces":
            return len(self._values.get(name, ())) > 0
        return name in self._values

    def copy(self) -> "ComponentDirConfig":
        copied = ComponentDirConfig(self.path)
        for name, value in self._values.items():
            copied._values[name] = value.copy() if isinstance(value, Namespaces) else value
        return copied

    def __repr__(self):
        return f"ComponentDirConfig({self.path!r}, {self._values!r})"


class ComponentDirs:
    """The ordered component dirs of a container, plus defaults applied to each.

    Example:
        >>> dirs = ComponentDirs()
        >>> dirs.defaults.memoize = True
        >>> dirs.add("lib")
        >>> dirs.dir("lib").memoize
        True
    """

    def __init__(self):
        self._dirs: dict[str, ComponentDirConfig] = {}
        self.defaults = ComponentDirConfig(None)

    def copy(self) -> "ComponentDirs":
        copied = ComponentDirs()
        copied._dirs = {path: dir.copy() for path, dir in self._dirs.items()}
        copied.defaults = self.defaults.copy()
        return copied

    def dir(self, path: str) -> Optional[ComponentDirConfig]:
        dir = self._dirs.get(path)
        if dir is not None:
            self._apply_defaults(dir)
        return dir

    __getitem__ = dir

    def add(self, path_or_dir: Union[str, ComponentDirConfig], **settings) -> ComponentDirConfig:
        """Add a component dir, by path (with optional settings) or as a config object.

        Raises:
            ComponentDirAlreadyAddedError: If a dir with the same path was added.
        """
        if isinstance(path_or_dir, ComponentDirConfig):
            dir = path_or_dir
            for name, value in settings.items():
                setattr(dir, name, value)
        else:
            dir = ComponentDirConfig(path_or_dir, **settings)

        if dir.path in self._dirs:
            raise ComponentDirAlreadyAddedError(dir.path)

        self._apply_defaults(dir)
        self._dirs[dir.path] = dir
        return dir

    def delete(self, path: str) -> Optional[ComponentDirConfig]:
        return self._dirs.pop(path, None)

    @property
    def paths(self) -> list[str]:
        return list(self._dirs)

    def __len__(self):
        return len(self._dirs)

    def to_list(self) -> list[ComponentDirConfig]:
        for dir in self._dirs.values():
            self._apply_defaults(dir)
        return list(self._dirs.values())

    def __iter__(self) -> Iterator[ComponentDirConfig]:
        return iter(self.to_list())

    def _apply_defaults(self, dir: ComponentDirConfig):
        for name in ComponentDirConfig.SETTINGS:
            if self.defaults.configured(name) and not dir.configured(name):
                value = getattr(self.defaults, name)
                setattr(dir, name, value.copy() if isinstance(value, Namespaces) else value)


def _default_env() -> str:
    return os.environ.get("APP_ENV", "development")


class ContainerConfig:
    """Settings for a container.

    Attributes:
        name: An optional name for the container.
        root: The root directory all relative paths resolve against.
        env: The environment name, used by the settings source and logging plugin.
        provider_dirs: Directories searched for ``<provider name>.py`` files.
        registrations_dir: Directory holding ``<root key>.py`` registration files.
        component_dirs: The container's :class:`ComponentDirs`.
        exports: Keys other containers may import, or ``None`` for all keys.
        inflector: The :class:`Inflector` used to derive class names.
        provider_sources: Registry of reusable provider sources.
        plugins: Registry of plugins available to :meth:`Container.use`.
        auto_registrar, manifest_registrar, provider_registrar, importer: The
            classes the container instantiates for each discovery strategy.

    Once frozen (when the container is configured), setting attributes raises
    :class:`ConfigFrozenError`.
    """

    def __init__(self, **values):
        object.__setattr__(self, "_frozen", False)
        self.name: Optional[str] = None
        self.root: Path = Path.cwd()
        self.env: str = _default_env()
        self.provider_dirs: list[Union[str, Path]] = ["system/providers"]
        self.registrations_dir: Union[str, Path] = "system/registrations"
        self.component_dirs = ComponentDirs()
        self.exports: Optional[list[str]] = None
        self.inflector = Inflector()
        self.provider_sources = default_provider_sources()
        self.plugins = default_plugins()
        self.auto_registrar = AutoRegistrar
        self.manifest_registrar = ManifestRegistrar
        self.provider_registrar = ProviderRegistrar
        self.importer = Importer

        for name, value in values.items():
            if not hasattr(self, name):
                raise AttributeError(f"Unknown container setting: {name!r}")
            setattr(self, name, value)

    def __setattr__(self, name, value):
        if self._frozen:
            raise ConfigFrozenError(name)
        if name == "root":
            value = Path(value)
        elif name == "exports" and value is not None:
            value = [str(key) for key in value]
        object.__setattr__(self, name, value)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> "ContainerConfig":
        object.__setattr__(self, "_frozen", True)
        return self
