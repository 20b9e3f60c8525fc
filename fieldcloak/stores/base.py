"""
Base class for all record stores.
Every persistence backend the Model talks to implements this interface.
"""

from abc import ABC, abstractmethod
from typing import Iterator


class RecordStore(ABC):
    """Abstract base class for document-style record stores."""

    @abstractmethod
    def insert_one(self, record: dict) -> str:
        """
        Insert a record, assigning its "_id" if it has none.

        Args:
            record: The record to store. Its "_id" is set in place.

        Returns:
            The record's id.
        """

    def insert_many(self, records: list[dict]) -> list[str]:
        """Insert several records, in order."""
        return [self.insert_one(record) for record in records]

    @abstractmethod
    def save(self, record: dict) -> str:
        """Insert the record, or replace the stored one with the same "_id"."""

    @abstractmethod
    def find(self, query: dict = None, limit: int = None) -> list[dict]:
        """
        Fetch records matching a query descriptor.

        Returns:
            Copies of the matching records, in insertion order.
        """

    @abstractmethod
    def update_many(self, query: dict, update: dict, limit: int = None) -> int:
        """Apply an update descriptor to matching records. Returns the match count."""

    @abstractmethod
    def replace_one(self, query: dict, replacement: dict) -> int:
        """Replace the first matching record, keeping its "_id"."""

    @abstractmethod
    def delete_many(self, query: dict, limit: int = None) -> list[dict]:
        """Delete matching records and return them."""

    def count(self, query: dict = None) -> int:
        """Count records matching a query descriptor."""
        return len(self.find(query))

    @abstractmethod
    def estimated_count(self) -> int:
        """Total number of stored records, without filtering."""

    @abstractmethod
    def cursor(self, batch_size: int = 10) -> Iterator[dict]:
        """Iterate over every stored record, fetching batch_size at a time."""
