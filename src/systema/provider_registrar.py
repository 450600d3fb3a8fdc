"""Registering, discovering and running providers."""

import inspect
from pathlib import Path
from typing import Any, Callable, Optional

import structlog

from systema.errors import ProviderAlreadyRegisteredError, ProviderNotFoundError
from systema.loader import load_source_file
from systema.provider import Provider
from systema.provider_source import ProviderSource

__all__ = ["ProviderRegistrar"]

logger = structlog.get_logger(__name__)


class ProviderRegistrar:
    """The providers of a container.

    Providers are registered directly, or discovered from ``<name>.py`` files in the
    container's provider dirs. Such a file runs with the container bound to the
    module global ``container``:

        # system/providers/db.py
        @container.register_provider("db")
        class Database(ProviderSource):
            def start(self):
                self.register("db", connect())

    When several provider dirs hold a file of the same name, the first dir wins.
    """

    provider_source_class = ProviderSource

    def __init__(self, container):
        self.container = container
        self.providers: dict[str, Provider] = {}
        self._loaded_files: set[Path] = set()
        self._provider_files: Optional[list[Path]] = None
        self._finalized = False

    @property
    def target_container(self):
        return self.container

    @property
    def finalized(self) -> bool:
        return self._finalized

    def register_provider(
        self,
        name: str,
        from_: Optional[str] = None,
        source: Any = None,
        if_: bool = True,
        namespace: Any = None,
        configure: Optional[Callable] = None,
        **provider_options,
    ):
        """Register a provider.

        Without ``source``, ``configure`` or ``from_`` this returns a decorator:
        decorating a :class:`ProviderSource` subclass uses it as the source, and
        decorating a function uses it as the block defining the source's steps (see
        :meth:`ProviderSource.for_`); ``configure`` does the same without a
        decorator. With ``from_``, the provider uses the source registered as
        ``source`` (default: ``name``) in that group of the container's provider
        sources, and ``configure``, if given, is called with the source instance.

        Raises:
            ProviderAlreadyRegisteredError: If a provider with this name exists.
            ValueError: For a source class given together with ``from_`` or a block.
        """
        name = str(name)
        if name in self.providers:
            raise ProviderAlreadyRegisteredError(name)
        if from_ is not None and inspect.isclass(source):
            raise ValueError("You must supply a block when using a provider source")
        if configure is not None and inspect.isclass(source):
            raise ValueError("You must supply only a `source` or a block, not both")

        if source is None and configure is None and from_ is None:
            return self._registration_decorator(name, if_, namespace, provider_options)

        if not if_:
            return self

        options = dict(provider_options)
        if namespace is not None:
            options["namespace"] = namespace

        if from_ is not None:
            provider = self._build_provider_from_source(
                name, source=source or name, group=from_, options=options, configure=configure
            )
        else:
            provider = self._build_provider(name, source=source, options=options, block=configure)

        self.providers[provider.name] = provider
        logger.debug("provider.registered", provider=name)
        return self

    def __getitem__(self, provider_name: Any) -> Optional[Provider]:
        """Find a provider, loading its provider file if needed.

        Returns ``None`` when there is no such provider, or once finalized when it
        was not registered before.
        """
        provider_name = str(provider_name)
        provider = self.providers.get(provider_name)
        if provider is not None:
            return provider

        if self._finalized:
            return None

        self._require_provider_file(provider_name)
        return self.providers.get(provider_name)

    find_and_load_provider = __getitem__

    def __contains__(self, provider_name: Any) -> bool:
        return str(provider_name) in self.providers

    @property
    def provider_files(self) -> list[Path]:
        if self._provider_files is None:
            files: list[Path] = []
            seen: set[str] = set()
            for path in self._provider_paths():
                if not path.is_dir():
                    continue
                for file_path in sorted(path.glob("*.py")):
                    if file_path.name not in seen:
                        files.append(file_path)
                        seen.add(file_path.name)
            self._provider_files = files
        return self._provider_files

    def finalize(self):
        for file_path in self.provider_files:
            self._load_provider(file_path)

        for provider in list(self.providers.values()):
            provider.start()

        self._finalized = True

    def shutdown(self) -> "ProviderRegistrar":
        for provider in list(self.providers.values()):
            provider.stop()
        return self

    def prepare(self, provider_name: Any) -> "ProviderRegistrar":
        self._with_provider(provider_name).prepare()
        return self

    def start(self, provider_name: Any) -> "ProviderRegistrar":
        self._with_provider(provider_name).start()
        return self

    def stop(self, provider_name: Any) -> "ProviderRegistrar":
        self._with_provider(provider_name).stop()
        return self

    def _registration_decorator(self, name, if_, namespace, provider_options) -> Callable:
        def decorator(target):
            if inspect.isclass(target) and issubclass(target, ProviderSource):
                self.register_provider(
                    name, source=target, if_=if_, namespace=namespace, **provider_options
                )
            elif callable(target):
                self.register_provider(
                    name, configure=target, if_=if_, namespace=namespace, **provider_options
                )
            else:
                raise ValueError(f"{target!r} is not a provider source class or function")
            return target

        return decorator

    def _provider_paths(self) -> list[Path]:
        paths = []
        for dir in self.container.config.provider_dirs:
            dir = Path(dir)
            paths.append(dir if dir.is_absolute() else self.container.root / dir)
        return paths

    def _build_provider(self, name, source, options, block) -> Provider:
        source_class = source or ProviderSource.for_(
            name, superclass=self.provider_source_class, block=block
        )
        return Provider(
            name=name,
            target_container=self.target_container,
            source_class=source_class,
            **options,
        )

    def _build_provider_from_source(self, name, source, group, options, configure) -> Provider:
        registration = self.container.config.provider_sources.resolve(str(source), group)
        return Provider(
            name=name,
            target_container=self.target_container,
            source_class=registration.source,
            configure=configure,
            **{**registration.provider_options, **options},
        )

    def _with_provider(self, provider_name: Any) -> Provider:
        provider_name = str(provider_name)
        if provider_name not in self.providers:
            self._require_provider_file(provider_name)

        provider = self.providers.get(provider_name)
        if provider is None:
            raise ProviderNotFoundError(provider_name)
        return provider

    def _load_provider(self, file_path: Path):
        if file_path.stem not in self.providers:
            self._require(file_path)

    def _require_provider_file(self, name: str):
        file_path = next((f for f in self.provider_files if f.stem == name), None)
        if file_path is not None:
            self._require(file_path)

    def _require(self, file_path: Path):
        if file_path in self._loaded_files:
            return
        self._loaded_files.add(file_path)
        load_source_file(
            file_path, f"_systema_providers.{file_path.stem}", container=self.container
        )
