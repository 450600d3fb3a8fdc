"""Registry of reusable provider sources."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional, Union

from systema.errors import ProviderSourceNotFoundError
from systema.loader import load_source_file
from systema.provider_source import ProviderSource
from systema.settings import SettingsSource

__all__ = ["SourceRegistration", "ProviderSourceRegistry", "default_provider_sources"]


@dataclass(frozen=True)
class SourceRegistration:
    """A registered source class plus default options for providers using it."""

    source: type[ProviderSource]
    provider_options: dict[str, Any] = field(default_factory=dict)


class ProviderSourceRegistry:
    """Provider sources keyed by name and group.

    Providers use a registered source with ``register_provider(name, from_=group)``.
    A registry is owned by container configuration; share one instance between
    containers to share sources.
    """

    def __init__(self):
        self.sources: dict[tuple[str, Optional[str]], SourceRegistration] = {}

    def register(
        self,
        name: str,
        group: Optional[str],
        source: type[ProviderSource],
        provider_options: Optional[dict[str, Any]] = None,
    ) -> "ProviderSourceRegistry":
        self.sources[(name, group)] = SourceRegistration(source, dict(provider_options or {}))
        return self

    def register_from_block(
        self,
        name: str,
        group: Optional[str],
        block: Callable,
        provider_options: Optional[dict[str, Any]] = None,
    ) -> "ProviderSourceRegistry":
        source = ProviderSource.for_(name, group=group, block=block)
        return self.register(name, group, source, provider_options)

    def provider_source(self, name: str, group: Optional[str] = None, **provider_options) -> Callable:
        """Decorator registering a source class, or a block defining one.

        Example:
            @sources.provider_source("mailer", group="shared")
            class Mailer(ProviderSource):
                def start(self):
                    self.register("mailer", SMTPMailer())
        """

        def decorator(target):
            if isinstance(target, type) and issubclass(target, ProviderSource):
                self.register(name, group, target, provider_options)
            else:
                self.register_from_block(name, group, target, provider_options)
            return target

        return decorator

    def resolve(self, name: str, group: Optional[str] = None) -> SourceRegistration:
        """Return the registration for a source.

        Raises:
            ProviderSourceNotFoundError: If no source is registered for the name and group.
        """
        registration = self.sources.get((name, group))
        if registration is None:
            raise ProviderSourceNotFoundError(name, group, self.sources.keys())
        return registration

    def load_sources(self, path: Union[str, Path]) -> "ProviderSourceRegistry":
        """Execute every Python file under ``path``, with this registry bound as ``sources``."""
        for file_path in sorted(Path(path).rglob("*.py")):
            load_source_file(
                file_path, f"_systema_provider_sources.{file_path.stem}", sources=self
            )
        return self


def default_provider_sources() -> ProviderSourceRegistry:
    """A registry holding the built-in sources, such as ``settings`` in group ``system``."""
    return ProviderSourceRegistry().register("settings", "system", SettingsSource)
