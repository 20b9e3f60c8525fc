"""
Errors
Exception hierarchy for field protection.

Configuration problems surface at registration time. Mode, key and
ciphertext problems are programmer errors raised by the cipher and the
traversal engine. A wrong password is never an error: it is a plain
negative result.
"""


class FieldCloakError(Exception):
    """Base class for every error raised by fieldcloak."""


class ConfigurationError(FieldCloakError, ValueError):
    """Missing or invalid field specs or key material at registration."""


class InvalidModeError(FieldCloakError, ValueError):
    """Unknown transformation mode passed to the traversal engine."""


class InvalidKeyError(FieldCloakError, ValueError):
    """Key material is missing or not 256 bits long."""


class DecryptionError(FieldCloakError, ValueError):
    """A token could not be deciphered with the given key."""


class AuthenticationInputError(FieldCloakError, ValueError):
    """A combined authentication descriptor carries no password field."""
