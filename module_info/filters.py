"""
Field filtering for module metadata.

Selects the bare values of a single key from a module's raw records.
"""

from typing import Iterable, Iterator

from .models import RawPair

FILENAME_FIELD = "filename"


class FieldFilter:
    """Select the values of records whose key equals a field name."""

    def __init__(self, field: str):
        self.field = field

    @property
    def is_filename(self) -> bool:
        """True when the filter asks for the module path, which is not a record."""
        return self.field == FILENAME_FIELD

    def matches(self, pair: RawPair) -> bool:
        # Literal comparison only; "parm" matches raw parm records unmerged
        return pair.key == self.field

    def select(self, pairs: Iterable[RawPair]) -> Iterator[str]:
        """
        Yield the value of every matching record, in source order.

        Args:
            pairs: Raw records of one module

        Returns:
            Iterator[str]: Matching values; empty if no key matches
        """
        for pair in pairs:
            if self.matches(pair):
                yield pair.value
