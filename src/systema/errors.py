"""Exceptions raised by the container and its collaborators."""

from difflib import get_close_matches
from typing import Any, Iterable, Optional

__all__ = [
    "ContainerError",
    "ConfigFrozenError",
    "ContainerAlreadyFinalizedError",
    "ComponentNotFoundError",
    "ItemAlreadyRegisteredError",
    "ComponentDirAlreadyAddedError",
    "ComponentDirNotFoundError",
    "NamespaceAlreadyAddedError",
    "ProviderAlreadyRegisteredError",
    "ProviderNotFoundError",
    "ProviderSourceNotFoundError",
    "PluginNotFoundError",
    "UnknownEventError",
    "ComponentNotLoadableError",
    "InvalidSettingsError",
]


class ContainerError(Exception):
    """Base class for every error raised by systema."""

    pass


class ConfigFrozenError(ContainerError):
    """Raised when modifying a container's configuration after it was configured."""

    def __init__(self, name: str):
        super().__init__(f"Cannot set '{name}': configuration is already frozen")


class ContainerAlreadyFinalizedError(ContainerError):
    """Raised when registering or importing into a finalized container."""

    def __init__(self, message: str = "Container is already finalized"):
        super().__init__(message)


class ComponentNotFoundError(ContainerError, KeyError):
    """Raised when a key cannot be resolved from any source."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Nothing registered with the key {key!r}")

    def __str__(self):
        return self.args[0]


class ItemAlreadyRegisteredError(ContainerError):
    """Raised when replacing a memoized item that has already been resolved."""

    def __init__(self, key: str):
        super().__init__(
            f"There is already a resolved, memoized item registered with the key {key!r}"
        )


class ComponentDirAlreadyAddedError(ContainerError):
    def __init__(self, path: str):
        super().__init__(f"Component directory {path!r} already added")


class ComponentDirNotFoundError(ContainerError):
    def __init__(self, path: Any):
        super().__init__(f"Component dir '{path}' not found")


class NamespaceAlreadyAddedError(ContainerError):
    def __init__(self, path: Optional[str]):
        path_label = f"path {path!r}" if path else "root path"
        super().__init__(f"Namespace for {path_label} already added")


class ProviderAlreadyRegisteredError(ContainerError, ValueError):
    def __init__(self, name: str):
        super().__init__(f"Provider {name!r} has already been registered")


class ProviderNotFoundError(ContainerError, ValueError):
    def __init__(self, name: str):
        super().__init__(f"Provider {name!r} not found")


class ProviderSourceNotFoundError(ContainerError):
    """Raised when a provider refers to a source that was never registered."""

    def __init__(self, name: str, group: Optional[str], keys: Iterable[tuple]):
        available = "\n".join(
            f"- {key_name!r}, group: {key_group!r}" for key_name, key_group in keys
        )
        super().__init__(
            f"Provider source not found: {name!r}, group: {group!r}\n"
            f"Available provider sources:\n\n{available}"
        )


class PluginNotFoundError(ContainerError):
    def __init__(self, name: str):
        super().__init__(f"Plugin {name!r} does not exist")


class UnknownEventError(ContainerError, KeyError):
    def __init__(self, event: str):
        super().__init__(f"Event {event!r} is not registered")

    def __str__(self):
        return self.args[0]


class ComponentNotLoadableError(ContainerError):
    """Raised when a component's source file does not define the expected class.

    The message names the class that was looked for and, where possible, suggests
    near matches found in the loaded module. A match differing only in case usually
    means the inflector is missing an acronym.
    """

    def __init__(self, component: Any, class_name: str, candidates: Iterable[str]):
        self.component = component
        self.class_name = class_name
        full_name = f"{component.module_name}.{class_name}"

        lines = [
            f"Component '{component.key}' is not loadable.",
            f"Looking for {full_name}.",
        ]

        candidates = list(candidates)
        case_correction = next(
            (c for c in candidates if c.lower() == class_name.lower()), None
        )
        if case_correction:
            acronyms = _acronyms_needed(case_correction, class_name)
            lines.append(
                "\nYou likely need to add:\n\n"
                f"    inflector.acronym({', '.join(repr(a) for a in acronyms)})\n\n"
                f"to your container's inflector, since we found a {case_correction} class."
            )
        else:
            corrections = get_close_matches(class_name, candidates, n=3, cutoff=0.6)
            if corrections:
                lines.append("Did you mean?  " + "\n               ".join(corrections))

        super().__init__("\n".join(lines))


class InvalidSettingsError(ContainerError, ValueError):
    """Raised by the settings provider source when settings fail validation."""

    def __init__(self, errors: dict[str, str]):
        self.errors = errors
        details = "\n".join(f"{key}: {error}" for key, error in sorted(errors.items()))
        super().__init__(
            "Could not load settings. The following settings were invalid:\n\n" + details
        )


def _acronyms_needed(found: str, expected: str) -> list[str]:
    """Return the upper-cased runs present in ``found`` but camel-cased in ``expected``."""
    acronyms = []
    run = ""
    for char in found + "_":
        if char.isupper():
            run += char
            continue
        if len(run) > 1:
            # the last capital of a run starts the next word
            word = run if not char.islower() else run[:-1]
            if len(word) > 1 and word not in expected:
                acronyms.append(word)
        run = ""
    return acronyms or [found]
