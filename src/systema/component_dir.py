"""Locating component source files within a configured component dir."""

import re
from pathlib import Path
from typing import Iterator, Optional

from systema.component import Component, parse_magic_comments
from systema.config import ComponentDirConfig, Namespace
from systema.errors import ComponentDirNotFoundError
from systema.identifier import KEY_SEPARATOR, PATH_SEPARATOR, Identifier

__all__ = ["ComponentDir", "SOURCE_EXT"]

SOURCE_EXT = ".py"
_WORD = re.compile(r"\w+")


class ComponentDir:
    """A component dir within a container's root, with its configuration.

    Namespaces are searched in the order they were configured, so for a key that
    could match files in several namespaces the earliest namespace wins.
    """

    def __init__(self, config: ComponentDirConfig, container):
        self.config = config
        self.container = container

    @property
    def path(self) -> str:
        return self.config.path

    @property
    def auto_register(self):
        return self.config.auto_register

    @property
    def memoize(self):
        return self.config.memoize

    @property
    def loader(self):
        return self.config.loader

    @property
    def instance(self):
        return self.config.instance

    @property
    def namespaces(self):
        return self.config.namespaces

    @property
    def add_to_load_path(self) -> bool:
        return self.config.add_to_load_path

    @property
    def full_path(self) -> Path:
        return self.container.root / self.path

    def component_for_key(self, key: str) -> Optional[Component]:
        """Return a component for ``key`` if a matching source file exists, else ``None``."""
        identifier = Identifier(key)
        for namespace in self.namespaces:
            if not identifier.start_with(namespace.key):
                continue
            file_path = self._find_component_file(identifier, namespace)
            if file_path is not None:
                return self._build_component(identifier, namespace, file_path)
        return None

    def each_component(self) -> Iterator[Component]:
        """Yield a component for every source file in the dir, namespace by namespace.

        Raises:
            ComponentDirNotFoundError: If the dir does not exist.
        """
        if not self.full_path.is_dir():
            raise ComponentDirNotFoundError(self.full_path)

        for namespace in self.namespaces:
            for file_path in self._files(namespace):
                yield self._component_for_path(file_path, namespace)

    def _files(self, namespace: Namespace) -> list[Path]:
        if namespace.has_path:
            return _source_files(self.full_path / namespace.path)

        other_paths = [
            tuple(ns.path.split(PATH_SEPARATOR)) for ns in self.namespaces if ns.has_path
        ]
        return [
            file_path
            for file_path in _source_files(self.full_path)
            if not any(
                file_path.relative_to(self.full_path).parts[: len(parts)] == parts
                for parts in other_paths
            )
        ]

    def _component_for_path(self, file_path: Path, namespace: Namespace) -> Component:
        relative = file_path.relative_to(self.full_path).with_suffix("")
        key = KEY_SEPARATOR.join(_WORD.findall(relative.as_posix()))

        namespace_path = (
            namespace.path.replace(PATH_SEPARATOR, KEY_SEPARATOR) if namespace.path else None
        )
        identifier = Identifier(key).namespaced(from_=namespace_path, to=namespace.key)

        return self._build_component(identifier, namespace, file_path)

    def _find_component_file(self, identifier: Identifier, namespace: Namespace) -> Optional[Path]:
        if namespace.key:
            identifier = identifier.namespaced(from_=namespace.key, to=None)

        file_name = identifier.key_with_separator(PATH_SEPARATOR) + SOURCE_EXT
        if namespace.has_path:
            file_path = self.full_path / namespace.path / file_name
        else:
            file_path = self.full_path / file_name

        return file_path if file_path.is_file() else None

    def _build_component(self, identifier: Identifier, namespace: Namespace, file_path: Path) -> Component:
        options = {
            "inflector": self.container.config.inflector,
            "auto_register": self.auto_register,
            "loader": self.loader,
            "instance": self.instance,
            "memoize": self.memoize,
            **parse_magic_comments(file_path),
        }
        return Component(identifier, Path(file_path), namespace, options)

    def __repr__(self):
        return f"ComponentDir({self.path!r})"


def _source_files(directory: Path) -> list[Path]:
    return sorted(
        path
        for path in directory.rglob(f"*{SOURCE_EXT}")
        if path.name != f"__init__{SOURCE_EXT}" and "__pycache__" not in path.parts
    )
