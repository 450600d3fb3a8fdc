"""Loading hand-written registration files."""

from pathlib import Path

from systema.identifier import Identifier
from systema.loader import load_source_file

__all__ = ["ManifestRegistrar"]


class ManifestRegistrar:
    """Loads registration files named after a component's root key.

    A file ``<registrations_dir>/articles.py`` is expected to register the
    ``articles.*`` components. Each file runs at most once, with the container
    bound to the module global ``container``:

        # system/registrations/articles.py
        container.register("articles.formatter", factory=Formatter)
    """

    def __init__(self, container):
        self.container = container
        self._loaded_files: set[Path] = set()

    @property
    def registrations_dir(self) -> Path:
        return self.container.root / self.container.config.registrations_dir

    def finalize(self):
        if not self.registrations_dir.is_dir():
            return
        for file_path in sorted(self.registrations_dir.glob("*.py")):
            self.call(Identifier(file_path.stem))

    def call(self, component):
        """Run the registration file for the component's root key, at most once."""
        file_path = self._file_path(component)
        if file_path in self._loaded_files:
            return
        self._loaded_files.add(file_path)
        load_source_file(
            file_path,
            f"_systema_registrations.{component.root_key}",
            container=self.container,
        )

    def file_exists(self, component) -> bool:
        return self._file_path(component).is_file()

    def _file_path(self, component) -> Path:
        return self.registrations_dir / f"{component.root_key}.py"
