"""The container: configuration, registry and lazy component resolution.

A container resolves components lazily until it is finalized. A key missing from
the registry is looked up, in order, as:

1. a provider with the same name, which is started;
2. a component file in the component dirs (earliest dir and namespace first),
   after starting any provider named by the key's root segment;
3. a registration file named after the key's root segment;
4. a key of a container imported under the root segment, or without a namespace.

Finalizing runs every strategy eagerly and freezes the registry, after which
resolution is a plain lookup.

Example:
    >>> container = Container(root="/path/to/app")
    >>> container.config.component_dirs.add("lib")
    >>> container["articles.create"]  # instance of Create from lib/articles/create.py
"""

import sys
from collections import defaultdict
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Optional, Union

import structlog

from systema.component import Component, IndirectComponent
from systema.component_dir import ComponentDir
from systema.config import ContainerConfig
from systema.errors import ContainerAlreadyFinalizedError
from systema.identifier import Identifier
from systema.injector import Injector
from systema.registry import UNSET, Item, Registry, inferred_name

__all__ = ["Container"]

logger = structlog.get_logger(__name__)


class Container:
    """A registry of components which can discover and load them on demand.

    Args:
        config: An existing :class:`ContainerConfig`; a new one is built otherwise.
        **config_values: Settings applied to the config, e.g. ``root`` or
            ``provider_dirs``.
    """

    def __init__(self, config: Optional[ContainerConfig] = None, **config_values):
        if config is None:
            config = ContainerConfig(**config_values)
        else:
            for name, value in config_values.items():
                setattr(config, name, value)

        self.config = config
        self.registry = Registry()
        self._hooks: dict[str, list[Callable]] = defaultdict(list)
        self._configured = False
        self._finalized = False
        self._stubs_enabled = False
        self._enabled_plugins: list[str] = []

        self._providers = None
        self._auto_registrar = None
        self._manifest_registrar = None
        self._importer = None

        self.after("configure", _add_component_dirs_to_load_path)

    # -- configuration --------------------------------------------------------

    def configure(
        self, fn: Optional[Callable[[ContainerConfig], Any]] = None, finalize_config: bool = True
    ):
        """Call ``fn`` with the config, then mark the container as configured.

        Without ``fn``, returns a context manager yielding the config:

            with container.configure() as config:
                config.component_dirs.add("lib")
        """
        if fn is None:
            return self._configuring(finalize_config)
        fn(self.config)
        return self.configured(finalize_config=finalize_config)

    @contextmanager
    def _configuring(self, finalize_config: bool):
        yield self.config
        self.configured(finalize_config=finalize_config)

    def configured(self, finalize_config: bool = True) -> "Container":
        """Run the after-``configure`` hooks and freeze the config, once."""
        if self._configured:
            return self

        self.run_hooks("after_configure")

        if finalize_config:
            self.config.freeze()

        self._configured = True
        return self

    @property
    def is_configured(self) -> bool:
        return self._configured

    @property
    def root(self) -> Path:
        return self.config.root

    @property
    def exports(self) -> Optional[list[str]]:
        return self.config.exports

    def before(self, event: str, hook: Callable) -> "Container":
        self._hooks[f"before_{event}"].append(hook)
        return self

    def after(self, event: str, hook: Callable) -> "Container":
        """Register a hook for ``configure``, ``finalize``, ``register`` or ``inject`` events.

        Hooks receive the container; ``register`` hooks also receive the key, and
        ``inject`` hooks the injected class or function plus its dependency map.
        """
        self._hooks[f"after_{event}"].append(hook)
        return self

    def run_hooks(self, name: str, *args) -> "Container":
        for hook in self._hooks[name]:
            hook(self, *args)
        return self

    def use(self, plugin_name: str, **options) -> "Container":
        """Apply a plugin from the config's plugin registry, once."""
        if plugin_name in self._enabled_plugins:
            return self
        self.config.plugins[plugin_name](self, **options)
        self._enabled_plugins.append(plugin_name)
        return self

    def add_to_load_path(self, *dirs: Union[str, Path]) -> "Container":
        """Prepend directories (relative to the root) to ``sys.path``, keeping their order."""
        for dir in reversed(dirs):
            path = str(self.root / dir)
            if path not in sys.path:
                sys.path.insert(0, path)
        return self

    # -- registration ---------------------------------------------------------

    def register(
        self,
        key: Any,
        value: Any = UNSET,
        *,
        factory: Optional[Callable[[], Any]] = None,
        memoize: bool = False,
        **options,
    ) -> "Container":
        """Register a value, or a factory called on resolution.

        Raises:
            ContainerAlreadyFinalizedError: If the container is finalized.
        """
        return self.register_item(key, Item(value, factory, memoize, **options))

    def register_item(self, key: Any, item: Item) -> "Container":
        if self.registry.frozen:
            raise ContainerAlreadyFinalizedError(
                f"Cannot register {str(key)!r}: container is already finalized"
            )
        self.registry.register_item(key, item)
        self.run_hooks("after_register", str(key))
        return self

    def provides(self, key: Optional[str] = None, memoize: bool = False) -> Callable:
        """Decorator registering a function or class as a factory.

        Example:
            @container.provides(memoize=True)
            def make_mailer() -> Mailer:
                return Mailer(container["settings"].smtp_url)
        """

        def decorator(target):
            self.register(key or inferred_name(target), factory=target, memoize=memoize)
            return target

        return decorator

    def decorate(self, key: Any, decorator: Callable[[Any], Any]) -> "Container":
        """Wrap the component under ``key``, loading it first if needed.

        Example:
            container.decorate("mailer", lambda mailer: RetryingMailer(mailer))

        Raises:
            ComponentNotFoundError: If the key cannot be found.
            ContainerAlreadyFinalizedError: If the registry is frozen.
        """
        if not self._finalized:
            self.load_component(key)
        self.registry.decorate(key, decorator)
        return self

    def merge(self, other: Registry, namespace: Optional[str] = None, on_conflict=None) -> "Container":
        self.registry.merge(other, namespace=namespace, on_conflict=on_conflict)
        return self

    def import_from(self, other: "Container", namespace: Optional[str], keys=None) -> "Container":
        """Register another container for import under ``namespace``.

        Example:
            app.import_from(core, namespace="core")
            app["core.logger"]

        Raises:
            ContainerAlreadyFinalizedError: If the container is finalized.
        """
        if self._finalized:
            raise ContainerAlreadyFinalizedError()
        self.importer.register(namespace=namespace, container=other, keys=keys)
        return self

    def register_provider(self, name: str, **kwargs):
        """Register a provider; see :meth:`ProviderRegistrar.register_provider`.

        Returns a decorator when called without a source or block.
        """
        result = self.providers.register_provider(name, **kwargs)
        return self if result is self.providers else result

    def load_registrations(self, name: str) -> "Container":
        self.manifest_registrar.call(Identifier(name))
        return self

    # -- resolution -----------------------------------------------------------

    def resolve(self, key: Any, default: Any = UNSET) -> Any:
        """Return the component registered under ``key``, loading it if needed.

        Raises:
            ComponentNotFoundError: If the key cannot be found and no default is given.
        """
        if not self._finalized:
            self.load_component(key)
        return self.registry.resolve(key, default)

    def __getitem__(self, key: Any) -> Any:
        return self.resolve(key)

    def has(self, key: Any) -> bool:
        """Whether ``key`` is registered, trying to load it when not finalized.

        A component backed by a file counts as present once the file is
        found, even if its class cannot be imported; resolving it then
        raises :class:`~systema.errors.ComponentNotLoadableError`.
        """
        if self._finalized or self.registered(key):
            return self.registered(key)
        self.load_component(key)
        return self.registered(key)

    __contains__ = has

    def registered(self, key: Any) -> bool:
        """Whether ``key`` is registered, without trying to load it."""
        return self.registry.registered(key)

    def keys(self) -> list[str]:
        return self.registry.keys()

    def load_component(self, key: Any) -> "Container":
        key = str(key)
        if self.registered(key):
            return self

        provider = self.providers[key]
        if provider is not None:
            provider.start()
            return self

        component = self._find_component(key)

        provider = self.providers[component.root_key]
        if provider is not None:
            provider.start()
        if self.registered(key):
            return self

        match component:
            case Component():
                self._load_local_component(component)
            case IndirectComponent() if self.manifest_registrar.file_exists(component):
                self.manifest_registrar.call(component)
            case IndirectComponent() if self.importer.namespace_registered(component.root_key):
                self._load_imported_component(component.identifier, namespace=component.root_key)
            case IndirectComponent() if self.importer.namespace_registered(None):
                self._load_imported_component(component.identifier, namespace=None)

        return self

    def component_dirs(self) -> list[ComponentDir]:
        return [ComponentDir(config=dir, container=self) for dir in self.config.component_dirs]

    def injector(self) -> Injector:
        return Injector(self)

    # -- lifecycle ------------------------------------------------------------

    @property
    def finalized(self) -> bool:
        return self._finalized

    def finalize(self, callback: Optional[Callable[["Container"], Any]] = None, freeze: bool = True) -> "Container":
        """Load every component from every source, then freeze the container.

        ``callback`` is called with the container just before loading starts.
        """
        if self._finalized:
            return self

        self.configured()

        self.run_hooks("before_finalize")

        if callback is not None:
            callback(self)

        for registrar in (self.providers, self.auto_registrar, self.manifest_registrar, self.importer):
            registrar.finalize()
        self._finalized = True

        self.run_hooks("after_finalize")

        if freeze and not self._stubs_enabled:
            self.registry.freeze()

        logger.info("container.finalized", container=self.config.name, components=len(self.registry))
        return self

    def prepare(self, name: str) -> "Container":
        self.providers.prepare(name)
        return self

    def start(self, name: str) -> "Container":
        self.providers.start(name)
        return self

    def stop(self, name: str) -> "Container":
        self.providers.stop(name)
        return self

    def shutdown(self) -> "Container":
        self.providers.shutdown()
        return self

    # -- stubs ----------------------------------------------------------------

    def enable_stubs(self) -> "Container":
        """Allow stubbing components in tests; finalizing no longer freezes the registry."""
        self._stubs_enabled = True
        self.registry.enable_stubs()
        return self

    def stub(self, key: Any, value: Any):
        """Replace a component with ``value``; usable as a context manager."""
        if not self.registered(key):
            self.load_component(key)
        return self.registry.stub(key, value)

    def unstub(self, *keys: Any) -> "Container":
        self.registry.unstub(*keys)
        return self

    # -- collaborators --------------------------------------------------------

    @property
    def providers(self):
        if self._providers is None:
            self._providers = self.config.provider_registrar(self)
        return self._providers

    @property
    def auto_registrar(self):
        if self._auto_registrar is None:
            self._auto_registrar = self.config.auto_registrar(self)
        return self._auto_registrar

    @property
    def manifest_registrar(self):
        if self._manifest_registrar is None:
            self._manifest_registrar = self.config.manifest_registrar(self)
        return self._manifest_registrar

    @property
    def importer(self):
        if self._importer is None:
            self._importer = self.config.importer(self)
        return self._importer

    def _load_local_component(self, component: Component):
        if component.auto_register:
            self.register(component.key, factory=component.instance, memoize=component.memoize)
            logger.debug("component.loaded", key=component.key, file=str(component.file_path))

    def _load_imported_component(self, identifier: Identifier, namespace: Optional[str]):
        import_key = identifier.namespaced(from_=namespace, to=None).key
        self.importer.import_namespace(namespace, keys=[import_key])

    def _find_component(self, key: str) -> Union[Component, IndirectComponent]:
        for component_dir in self.component_dirs():
            component = component_dir.component_for_key(key)
            if component is not None:
                return component
        return IndirectComponent(Identifier(key))

    def __repr__(self):
        name = f" {self.config.name!r}" if self.config.name else ""
        return f"<Container{name} finalized={self._finalized}>"


def _add_component_dirs_to_load_path(container: Container):
    # a single pass keeps the earliest dirs first on sys.path
    paths = [dir.path for dir in container.config.component_dirs if dir.add_to_load_path]
    container.add_to_load_path(*paths)
