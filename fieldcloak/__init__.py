"""
fieldcloak — Field-level protection for document stores
Cipher, decipher and hash selected fields of nested records and of the
queries that reference them.

Two kinds of protected fields:
1. PII fields — AES-256-CBC with a cleartext-derived IV. Deterministic,
   so exact-match queries on ciphered values keep working.
2. Password fields — salted bcrypt. Never searchable; verified in-process
   through Model.authenticate().

Usage:
    from fieldcloak import Model, Schema, mark_fields_as_pii
    schema = Schema("User")
    mark_fields_as_pii(schema, fields="email", key=KEY, password_fields="password")
    users = Model("User", schema)
    users.create({"email": "foo@bar.com", "password": "secret"})
    users.authenticate({"email": "foo@bar.com", "password": "secret"})
"""

from fieldcloak.ciphers import cipher, decipher, cipher_value
from fieldcloak.passwords import (
    check_password,
    check_password_async,
    hash_password,
    hash_password_async,
    looks_hashed,
)
from fieldcloak.fields import normalize_fields
from fieldcloak.traversal import Mode, Traversal, process_object, transformed
from fieldcloak.authentication import (
    authenticate,
    authenticate_async,
    split_authentication_fields,
)
from fieldcloak.plugin import FieldProtection, Schema, mark_fields_as_pii, was_registered_on
from fieldcloak.model import Model
from fieldcloak.convert import convert_data_for_model
from fieldcloak.errors import (
    AuthenticationInputError,
    ConfigurationError,
    DecryptionError,
    FieldCloakError,
    InvalidKeyError,
    InvalidModeError,
)

__version__ = "0.1.0"
__all__ = [
    "cipher",
    "decipher",
    "cipher_value",
    "hash_password",
    "hash_password_async",
    "check_password",
    "check_password_async",
    "looks_hashed",
    "normalize_fields",
    "Mode",
    "Traversal",
    "process_object",
    "transformed",
    "authenticate",
    "authenticate_async",
    "split_authentication_fields",
    "FieldProtection",
    "Schema",
    "mark_fields_as_pii",
    "was_registered_on",
    "Model",
    "convert_data_for_model",
    "FieldCloakError",
    "ConfigurationError",
    "InvalidModeError",
    "InvalidKeyError",
    "DecryptionError",
    "AuthenticationInputError",
]
