"""
Model
Reference integration between a protected Schema and a RecordStore.

Every operation runs the schema's hooks at the right moment:
  writes   cipher (and hash) before the store sees the record,
           decipher the caller's record afterwards
  reads    cipher the query, decipher every loaded record
  updates  cipher the query and the update, hash update passwords

Query and update descriptors are processed on copies; documents passed
to save() are transformed in place, the way the caller keeps working
with them after a save.
"""

import copy
import logging

from fieldcloak.authentication import authenticate
from fieldcloak.plugin import Schema
from fieldcloak.stores.base import RecordStore
from fieldcloak.stores.memory import MemoryStore


logger = logging.getLogger(__name__)


class Model:
    """
    A collection of records described by a schema.

    Args:
        name: Model name, used in diagnostics.
        schema: The schema, optionally carrying field protection.
        store: Backend holding the records. Defaults to a MemoryStore.
    """

    def __init__(self, name: str, schema: Schema, store: RecordStore = None):
        self.name = name
        self.schema = schema
        self.store = store if store is not None else MemoryStore()

    @property
    def protection(self):
        return self.schema.protection

    # Hooks

    def _before_write(self, docs: list[dict]) -> None:
        if self.protection:
            self.protection.cipher_documents(docs)

    def _after_read(self, docs: list[dict]) -> None:
        if self.protection:
            self.protection.decipher_documents(docs)

    def _prepare(self, query: dict = None, update: dict = None) -> tuple[dict, dict | None]:
        query = copy.deepcopy(query or {})
        update = copy.deepcopy(update) if update is not None else None
        if self.protection:
            self.protection.cipher_query(query, update)
        return query, update

    # Writes

    def save(self, doc: dict) -> dict:
        """Insert or replace doc. Ciphered fields read as cleartext again afterwards."""
        self._before_write([doc])
        try:
            self.store.save(doc)
        finally:
            self._after_read([doc])
        return doc

    def create(self, attrs: dict) -> dict:
        """Build a new record from attrs and save it."""
        return self.save(copy.deepcopy(attrs))

    def insert_many(self, descriptors: list[dict]) -> list[dict]:
        """Build and insert several records at once."""
        docs = [copy.deepcopy(d) for d in descriptors]
        self._before_write(docs)
        try:
            self.store.insert_many(docs)
        finally:
            self._after_read(docs)
        return docs

    def update_many(self, query: dict, update: dict) -> int:
        query, update = self._prepare(query, update)
        return self.store.update_many(query, update)

    def update_one(self, query: dict, update: dict) -> int:
        query, update = self._prepare(query, update)
        return self.store.update_many(query, update, limit=1)

    def replace_one(self, query: dict, replacement: dict) -> int:
        query, replacement = self._prepare(query, replacement)
        return self.store.replace_one(query, replacement)

    def delete_many(self, query: dict) -> int:
        query, _ = self._prepare(query)
        return len(self.store.delete_many(query))

    # Reads

    def find(self, query: dict = None, limit: int = None) -> list[dict]:
        query, _ = self._prepare(query)
        docs = self.store.find(query, limit=limit)
        self._after_read(docs)
        return docs

    def find_one(self, query: dict = None) -> dict | None:
        docs = self.find(query, limit=1)
        return docs[0] if docs else None

    def find_one_and_update(self, query: dict, update: dict) -> dict | None:
        """Update the first matching record and return its new state."""
        query, update = self._prepare(query, update)
        found = self.store.find(query, limit=1)
        if not found:
            return None
        record_query = {"_id": found[0]["_id"]}
        self.store.update_many(record_query, update, limit=1)
        docs = self.store.find(record_query, limit=1)
        self._after_read(docs)
        return docs[0] if docs else None

    def find_one_and_delete(self, query: dict) -> dict | None:
        query, _ = self._prepare(query)
        docs = self.store.delete_many(query, limit=1)
        self._after_read(docs)
        return docs[0] if docs else None

    def count(self, query: dict = None) -> int:
        query, _ = self._prepare(query)
        return self.store.count(query)

    def estimated_count(self) -> int:
        return self.store.estimated_count()

    # Authentication

    def authenticate(self, fields: dict, single: bool = True):
        """
        Find the record(s) matching fields, passwords included.

        Non-password fields form the query (ciphered like any other query);
        every password field given must verify against the stored hash.

        Returns:
            The first matching record or None, or a list when single=False.

        Raises:
            AuthenticationInputError: If no password field is given.
        """
        password_fields = self.protection.password_fields if self.protection else ()
        return authenticate(self.find, fields, password_fields, single=single)
