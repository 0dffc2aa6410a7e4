"""
store.py - Keyed storage for option records

An explicit identifier -> OptionRecord map. A contract instance uses a single
key, but the store can hold several so records can be inspected and tested
independently of any contract.

Writes are whole-record only: save() when an option is created, remove()
when it is settled. There is no update.
"""

from __future__ import annotations
from typing import Dict, Iterator, Optional

from .core import InvalidTerms, NotFound
from .option import OptionRecord


class OptionStore:
    """
    In-memory option record store.

    Example:
        store = OptionStore()
        store.save("state", record)
        store.load("state")    # -> record
        store.remove("state")
        store.load("state")    # raises NotFound
    """

    def __init__(self) -> None:
        self._records: Dict[str, OptionRecord] = {}

    def save(self, key: str, record: OptionRecord) -> None:
        """
        Persist a new record.

        Raises:
            InvalidTerms: If the key already holds an open option
        """
        if key in self._records:
            raise InvalidTerms(f"an option is already open under {key!r}")
        self._records[key] = record

    def load(self, key: str) -> OptionRecord:
        """
        Load the record under a key.

        Raises:
            NotFound: If no open option exists under the key
        """
        record = self._records.get(key)
        if record is None:
            raise NotFound(f"no open option under {key!r}")
        return record

    def may_load(self, key: str) -> Optional[OptionRecord]:
        """Load the record under a key, or None."""
        return self._records.get(key)

    def remove(self, key: str) -> OptionRecord:
        """
        Delete and return the record under a key.

        Raises:
            NotFound: If no open option exists under the key
        """
        if key not in self._records:
            raise NotFound(f"no open option under {key!r}")
        return self._records.pop(key)

    def __contains__(self, key: object) -> bool:
        return key in self._records

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._records))

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"OptionStore({len(self._records)} open)"
