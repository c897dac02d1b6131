"""
Data models for kernel module metadata.

This module contains the core data structures used to represent the
raw key/value records found in a module's .modinfo section, the merged
parameter entries built from them, and the rendering configuration.
"""

from typing import Callable, Iterable, Iterator, NamedTuple, Optional


class RawPair(NamedTuple):
    """A single key/value record as stored in a module's .modinfo section."""

    key: str
    value: str


class ParameterEntry:
    """Represents one load-time parameter of a kernel module."""

    def __init__(self, name: str, description: Optional[str] = None,
                 type: Optional[str] = None):
        """
        Initialize a ParameterEntry instance.

        Args:
            name: Parameter name
            description: Text from the "parm" record, if one was seen
            type: Type from the "parmtype" record, if one was seen
        """
        self.name = name
        self.description = description
        self.type = type

    def __str__(self) -> str:
        """Return the parameter as shown after the "parm:" label."""
        if self.description is None:
            return f"{self.name}:{self.type}"
        if self.type is None:
            return self.name
        return f"{self.name} {self.description} ({self.type})"

    def __repr__(self) -> str:
        return (f"ParameterEntry(name='{self.name}', "
                f"description={self.description!r}, type={self.type!r})")

    def __eq__(self, other) -> bool:
        if not isinstance(other, ParameterEntry):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def to_dict(self) -> dict:
        """Convert parameter to dictionary representation."""
        return {
            'name': self.name,
            'description': self.description,
            'type': self.type
        }


class RenderConfig:
    """Read-only settings shared by every report of one invocation."""

    def __init__(self, separator: str = "\n", field: Optional[str] = None):
        """
        Initialize a RenderConfig instance.

        Args:
            separator: Character terminating each output line ("\\n" or "\\0")
            field: Name of the single key to print bare values for

        Raises:
            ValueError: If separator is not exactly one character
        """
        if len(separator) != 1:
            raise ValueError(f"separator must be a single character, got {separator!r}")
        self._separator = separator
        self._field = field

    @property
    def separator(self) -> str:
        return self._separator

    @property
    def field(self) -> Optional[str]:
        return self._field

    @property
    def null_separated(self) -> bool:
        return self._separator == "\0"

    def __repr__(self) -> str:
        return f"RenderConfig(separator={self._separator!r}, field={self._field!r})"


class ModuleRecord:
    """A resolved kernel module together with the source of its metadata."""

    def __init__(self, name: str, path: str,
                 info_source: Callable[[], Iterable[RawPair]]):
        """
        Initialize a ModuleRecord instance.

        Args:
            name: Module name
            path: Canonical path of the module file, or "(builtin)"
            info_source: Callable producing the module's raw records; it is
                only invoked when the records are iterated
        """
        self.name = name
        self.path = path
        self._info_source = info_source

    def iter_info(self) -> Iterator[RawPair]:
        """
        Yield the module's raw records in source order.

        Raises:
            MetadataRetrievalFailure: If the records cannot be read
        """
        for key, value in self._info_source():
            yield RawPair(key, value)

    def __repr__(self) -> str:
        return f"ModuleRecord(name='{self.name}', path='{self.path}')"
