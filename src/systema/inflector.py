"""Conversion between file/key names and class names."""

import re
from typing import Iterable

__all__ = ["Inflector"]


class Inflector:
    """Camelizes underscored names into class names, and back.

    Acronyms are kept upper-cased when camelizing:

    Example:
        >>> inflector = Inflector(acronyms=["API"])
        >>> inflector.camelize("api_client")
        'APIClient'
        >>> inflector.underscore("APIClient")
        'api_client'
    """

    def __init__(self, acronyms: Iterable[str] = ()):
        self._acronyms: dict[str, str] = {}
        self.acronym(*acronyms)

    def acronym(self, *words: str) -> "Inflector":
        for word in words:
            self._acronyms[word.lower()] = word
        return self

    @property
    def acronyms(self) -> list[str]:
        return list(self._acronyms.values())

    def camelize(self, name: str) -> str:
        return "".join(
            self._acronyms.get(part.lower(), part[:1].upper() + part[1:])
            for part in name.split("_")
            if part
        )

    def underscore(self, name: str) -> str:
        for acronym in sorted(self._acronyms.values(), key=len, reverse=True):
            name = re.sub(
                rf"{re.escape(acronym)}(?=[A-Z]|_|$)",
                lambda m: "_" + acronym.lower() + "_",
                name,
            )
        name = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", name)
        name = re.sub(r"([a-z\d])([A-Z])", r"\1_\2", name)
        return re.sub(r"_+", "_", name).strip("_").lower()

    def __repr__(self):
        return f"Inflector(acronyms={self.acronyms!r})"
