"""
Authentication
Multi-field password verification.

Password hashes are salted, so a record can't be looked up by hashing the
supplied password. Instead the combined descriptor is split into a plain
query part and a password part; candidates are fetched with the query
part, then every declared password is checked against the candidate's
stored hash. A password path missing from a candidate is compared against
an empty hash, which never verifies.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable

from fieldcloak.errors import AuthenticationInputError
from fieldcloak.passwords import check_password, check_password_async


logger = logging.getLogger(__name__)


@dataclass
class SplitFields:
    """A combined descriptor split into its query and password parts."""
    query: dict = field(default_factory=dict)
    passwords: dict = field(default_factory=dict)


def set_path(obj: dict, path: str, value) -> None:
    """Set a dotted path inside obj, creating missing containers on the way."""
    *parents, leaf = path.split(".")
    for segment in parents:
        if not isinstance(obj.get(segment), dict):
            obj[segment] = {}
        obj = obj[segment]
    obj[leaf] = value


def _flatten(fields: dict, prefix: str = None):
    for name, value in fields.items():
        path = f"{prefix}.{name}" if prefix else name
        if isinstance(value, dict) and value:
            yield from _flatten(value, path)
        else:
            yield path, value


def split_authentication_fields(fields: dict, password_fields: Iterable[str]) -> SplitFields:
    """
    Split a combined descriptor into query and password parts.

    Nesting is preserved on both sides:
        {"email": "x", "admin": {"role": "r", "password": "p"}}
    with password_fields ["admin.password"] becomes
        query     {"email": "x", "admin": {"role": "r"}}
        passwords {"admin": {"password": "p"}}
    """
    password_fields = frozenset(password_fields)
    result = SplitFields()
    for path, value in _flatten(fields):
        target = result.passwords if path in password_fields else result.query
        set_path(target, path, value)
    return result


def walk_document_password_fields(doc: dict, passwords: dict) -> list[tuple]:
    """
    Pair every supplied cleartext with the candidate's stored hash.

    Walks passwords and doc in lock-step. Missing stored values pair with
    an empty string so they fail verification.
    """
    pairs = []
    for name, clear_text in passwords.items():
        stored = doc.get(name) if isinstance(doc, dict) else None
        if isinstance(clear_text, dict):
            pairs.extend(walk_document_password_fields(stored or {}, clear_text))
        else:
            pairs.append((clear_text, stored if isinstance(stored, str) else ""))
    return pairs


def _split_or_fail(fields: dict, password_fields: Iterable[str]) -> SplitFields:
    split = split_authentication_fields(fields, password_fields)
    if not split.passwords:
        raise AuthenticationInputError(
            "No password field was found in the authentication descriptor; "
            f"expected at least one of: {', '.join(sorted(password_fields))}"
        )
    return split


def authenticate(
    fetch: Callable[[dict], Iterable[dict]],
    fields: dict,
    password_fields: Iterable[str],
    single: bool = True,
):
    """
    Find the record(s) matching both the query fields and every password.

    Args:
        fetch: Record-store query callable, given the query part once.
        fields: Combined query + cleartext password descriptor.
        password_fields: Declared password field paths.
        single: Return the first match (or None) instead of a list.

    Raises:
        AuthenticationInputError: If fields carries no password field.
    """
    password_fields = tuple(password_fields)
    split = _split_or_fail(fields, password_fields)

    candidates = list(fetch(split.query))
    matches = []
    for candidate in candidates:
        pairs = walk_document_password_fields(candidate, split.passwords)
        if all(check_password(clear, hashed) for clear, hashed in pairs):
            if single:
                logger.debug("Authenticated 1 of %d candidate(s)", len(candidates))
                return candidate
            matches.append(candidate)

    logger.debug("Authenticated %d of %d candidate(s)", len(matches), len(candidates))
    return matches if not single else None


async def authenticate_async(
    fetch: Callable[[dict], Iterable[dict]],
    fields: dict,
    password_fields: Iterable[str],
    single: bool = True,
):
    """authenticate(), with every hash comparison run concurrently in threads."""
    password_fields = tuple(password_fields)
    split = _split_or_fail(fields, password_fields)

    candidates = list(fetch(split.query))

    async def verify(candidate: dict) -> bool:
        pairs = walk_document_password_fields(candidate, split.passwords)
        results = await asyncio.gather(
            *(check_password_async(clear, hashed) for clear, hashed in pairs)
        )
        return all(results)

    verdicts = await asyncio.gather(*(verify(c) for c in candidates))
    matches = [c for c, ok in zip(candidates, verdicts) if ok]

    logger.debug("Authenticated %d of %d candidate(s)", len(matches), len(candidates))
    if single:
        return matches[0] if matches else None
    return matches
