"""
Plugin
Declares which fields of a schema are protected, and provides the
lifecycle hooks a record-store integration calls around its operations.

    schema = Schema("User")
    mark_fields_as_pii(
        schema,
        fields="email firstName lastName",
        key=KEY,
        password_fields=["password"],
    )

Settings live on the schema itself (schema.protection). A schema is
registered at most once.

Hook points:
  pre-insert / pre-save         cipher_documents()
  post-insert / post-save / load decipher_documents()
  pre-query / update / count    cipher_query()
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable

from fieldcloak.ciphers import coerce_key
from fieldcloak.config import default_rounds
from fieldcloak.errors import ConfigurationError, InvalidKeyError
from fieldcloak.fields import normalize_fields
from fieldcloak.traversal import Mode, Traversal, process_object


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldProtection:
    """
    Resolved protection settings for one schema.

    Args:
        fields: Ciphered (searchable) field paths.
        key: 32-byte key material, None when only passwords are protected.
        password_fields: Hashed field paths.
        rounds: bcrypt cost factor used for password fields.
    """
    fields: tuple[str, ...]
    key: bytes | None = field(repr=False)
    password_fields: tuple[str, ...]
    rounds: int

    def _cipher(self, obj, traversal: Traversal) -> None:
        if self.fields:
            process_object(obj, self.fields, key=self.key, mode=Mode.CIPHER, traversal=traversal)

    def _hash(self, obj, traversal: Traversal) -> None:
        if self.password_fields:
            process_object(
                obj, self.password_fields, mode=Mode.HASH, traversal=traversal, rounds=self.rounds
            )

    def cipher_documents(self, docs: Iterable[dict]) -> None:
        """Pre-save hook: cipher PII fields and hash password fields in place."""
        # The same instance may appear several times in a batch: process it once
        unique = {id(doc): doc for doc in docs}
        for doc in unique.values():
            self._cipher(doc, Traversal.DOCUMENT)
            self._hash(doc, Traversal.DOCUMENT)

    def decipher_documents(self, docs: Iterable[dict]) -> None:
        """Post-save/post-load hook: decipher PII fields in place."""
        if not self.fields:
            return
        unique = {id(doc): doc for doc in docs if doc is not None}
        for doc in unique.values():
            process_object(
                doc, self.fields, key=self.key, mode=Mode.DECIPHER, traversal=Traversal.DOCUMENT
            )

    def cipher_query(self, query: dict, update: dict = None) -> None:
        """
        Pre-query hook: cipher PII values in a query and its update.

        Password values inside the update are hashed. Query passwords are
        left alone: salted hashes can't be matched anyway.
        """
        if query:
            self._cipher(query, Traversal.QUERY)
        if update:
            self._cipher(update, Traversal.QUERY)
            self._hash(update, Traversal.QUERY)


@dataclass(eq=False)
class Schema:
    """A named field-set owner carrying its protection settings, if any."""
    name: str
    protection: FieldProtection | None = field(default=None, repr=False)


def mark_fields_as_pii(
    schema: Schema,
    fields: str | Iterable[str] = None,
    key: bytes | str = None,
    password_fields: str | Iterable[str] = None,
    rounds: int = None,
) -> FieldProtection:
    """
    Register field protection on a schema.

    Args:
        schema: The schema to protect.
        fields: Field paths to cipher (list, or whitespace/comma string).
        key: Key material for ciphering. Required when fields is set.
        password_fields: Field paths to hash.
        rounds: bcrypt cost factor. Defaults to the environment's setting.

    Returns:
        The resolved settings, also attached as schema.protection.

    Raises:
        ConfigurationError: On missing options, bad key material, or a
            schema that is already registered.
    """
    fields = normalize_fields(fields)
    password_fields = normalize_fields(password_fields)

    if not fields and not password_fields:
        raise ConfigurationError(
            "mark_fields_as_pii requires at least one of `fields` or `password_fields`"
        )
    if fields and not key:
        raise ConfigurationError("Missing required `key` option for mark_fields_as_pii")
    if getattr(schema, "protection", None) is not None:
        raise ConfigurationError(f"Schema {schema.name!r} already has field protection")

    try:
        key = coerce_key(key) if fields else None
    except InvalidKeyError as exc:
        raise ConfigurationError(f"Invalid `key` option for mark_fields_as_pii: {exc}") from exc

    protection = FieldProtection(
        fields=fields,
        key=key,
        password_fields=password_fields,
        rounds=rounds or default_rounds(),
    )
    schema.protection = protection

    logger.debug(
        "Protected schema %s: ciphered=%s hashed=%s",
        schema.name, list(fields), list(password_fields),
    )
    return protection


def was_registered_on(handle) -> bool:
    """Whether a schema, or a model's schema, carries field protection."""
    schema = getattr(handle, "schema", handle)
    return isinstance(getattr(schema, "protection", None), FieldProtection)
