"""The built-in ``settings`` provider source.

Loads a ``pydantic_settings.BaseSettings`` subclass from the environment and the
container root's dotenv files, and registers it as ``settings``:

    class AppSettings(BaseSettings):
        database_url: str
        debug: bool = False

    container.register_provider(
        "settings", from_="system", configure=lambda source: source.settings(AppSettings)
    )

    container["settings"].database_url
"""

from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError
from pydantic_settings import BaseSettings

from systema.errors import InvalidSettingsError
from systema.provider_source import ProviderSource, SourceSettings

__all__ = ["SettingsSource", "dotenv_files", "load_settings"]


def dotenv_files(root: Path, env: str) -> list[Path]:
    """The dotenv files read for ``env``, most specific first."""
    files = [root / f".env.{env}.local"]
    if env != "test":
        files.append(root / ".env.local")
    files.extend([root / f".env.{env}", root / ".env"])
    return files


def load_settings(settings_class: type[BaseSettings], root: Path, env: str) -> BaseSettings:
    """Instantiate ``settings_class`` from the environment and dotenv files.

    Environment variables win over every file, and earlier files in
    :func:`dotenv_files` win over later ones.

    Raises:
        InvalidSettingsError: Listing every field that failed validation.
    """
    # pydantic-settings gives later files precedence
    env_files = tuple(reversed(dotenv_files(Path(root), env)))
    try:
        return settings_class(_env_file=env_files)
    except ValidationError as exc:
        errors = {
            ".".join(str(part) for part in error["loc"]) or "__root__": error["msg"]
            for error in exc.errors()
        }
        raise InvalidSettingsError(errors) from exc


class SettingsSource(ProviderSource):
    class Settings(SourceSettings):
        settings_class: Optional[Any] = None

    def settings(self, settings_class: Optional[type[BaseSettings]] = None):
        """Set the settings class to load, or return it when called without one."""
        if settings_class is None:
            return self.config.settings_class
        self.config.settings_class = settings_class
        return settings_class

    def start(self):
        settings_class = self.config.settings_class
        if settings_class is None:
            raise ValueError("No settings class configured for the settings provider")
        target_config = self.target.config
        self.register("settings", load_settings(settings_class, target_config.root, target_config.env))
