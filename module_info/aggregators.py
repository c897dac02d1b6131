"""
Aggregation of split parameter records.

A module describes each load-time parameter with up to two .modinfo
records: "parm" (name:description) and "parmtype" (name:type). This
module merges them into one ParameterEntry per parameter name.
"""

import sys
from typing import Dict, Iterable, List

from .exceptions import MalformedParameterRecord
from .models import ParameterEntry, RawPair

PARAMETER_KEYS = ("parm", "parmtype")


class ParameterAggregator:
    """Merge "parm" and "parmtype" records by parameter name."""

    def __init__(self):
        # Insertion order of the dict is the order of first sighting
        self._entries: Dict[str, ParameterEntry] = {}
        self.malformed: List[RawPair] = []

    @staticmethod
    def is_parameter_key(key: str) -> bool:
        return key in PARAMETER_KEYS

    def add(self, key: str, value: str) -> ParameterEntry:
        """
        Record one "parm" or "parmtype" value.

        The entry for the parameter is created on first sighting and
        updated in place afterwards. A later record for the same name
        and field overwrites the earlier one.

        Args:
            key: Either "parm" or "parmtype"
            value: Raw record value in the form "name:text"

        Returns:
            ParameterEntry: The created or updated entry

        Raises:
            ValueError: If key is not a parameter key
            MalformedParameterRecord: If value has no ':' separator
        """
        if key not in PARAMETER_KEYS:
            raise ValueError(f"not a parameter key: {key!r}")

        name, colon, text = value.partition(":")
        if not colon:
            raise MalformedParameterRecord(key, value)

        entry = self._entries.get(name)
        if entry is None:
            entry = ParameterEntry(name)
            self._entries[name] = entry

        if key == "parm":
            entry.description = text
        else:
            entry.type = text

        return entry

    def accept(self, pair: RawPair) -> bool:
        """
        Add a record, reporting and skipping it if it is malformed.

        Returns:
            bool: False if the record was rejected
        """
        try:
            self.add(pair.key, pair.value)
        except MalformedParameterRecord as e:
            print(f"Error: {e}", file=sys.stderr)
            self.malformed.append(pair)
            return False
        return True

    def consume(self, pairs: Iterable[RawPair]) -> "ParameterAggregator":
        """Feed every parameter record of a sequence; other keys are ignored."""
        for pair in pairs:
            if self.is_parameter_key(pair.key):
                self.accept(pair)
        return self

    def entries(self) -> List[ParameterEntry]:
        """Return the parameter table in first-seen order."""
        return list(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    @classmethod
    def aggregate(cls, pairs: Iterable[RawPair]) -> List[ParameterEntry]:
        """Build the parameter table for one module's records."""
        return cls().consume(pairs).entries()
