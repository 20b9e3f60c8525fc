"""
Traversal Engine
Walks nested documents and query/update descriptors, transforming the
scalar leaves that match a field spec.

Two traversal modes:
- QUERY: every key is visited. Operator keys ("$set", "$in", "$or", ...)
  do not extend the field path, their values are walked under the
  parent's path.
- DOCUMENT: only the keys leading to declared field paths are visited, so
  internal properties of a record representation are never touched.

A leaf matches when its full dotted path is declared, when its bare key
is declared, or, inside a list, when the list's own path (or the last
segment of it) is declared. The last rule is what makes
fields=["aliases"] cover every element of obj["aliases"].
"""

import copy
from enum import Enum
from typing import Callable, Iterable

from fieldcloak.ciphers import cipher_value, coerce_key, decipher
from fieldcloak.errors import InvalidModeError
from fieldcloak.passwords import hash_password, looks_hashed


OPERATOR_SIGIL = "$"


class Mode(Enum):
    """What happens to a matching leaf."""
    CIPHER = "cipher"
    DECIPHER = "decipher"
    HASH = "hash"


class Traversal(Enum):
    """Which keys get visited at each level."""
    DOCUMENT = "document"
    QUERY = "query"


def coerce_mode(mode: Mode | str) -> Mode:
    if isinstance(mode, Mode):
        return mode
    try:
        return Mode(mode)
    except ValueError:
        raise InvalidModeError(f"Unknown transform mode: {mode}") from None


def is_operator(node_key) -> bool:
    return isinstance(node_key, str) and node_key.startswith(OPERATOR_SIGIL)


def _leaf_transform(mode: Mode, key, rounds: int | None) -> Callable:
    if mode is Mode.CIPHER:
        key = coerce_key(key)
        return lambda value: cipher_value(key, value)
    if mode is Mode.DECIPHER:
        key = coerce_key(key)
        return lambda value: decipher(key, value)

    def hash_leaf(value):
        # Re-saving a loaded record must not hash its hash
        if looks_hashed(value):
            return value
        return hash_password(value, rounds)

    return hash_leaf


def _document_keys(node, fields: frozenset, prefix: str | None) -> list:
    if prefix is None:
        remaining = list(fields)
    else:
        lead = prefix + "."
        remaining = [f[len(lead):] for f in fields if f.startswith(lead)]

    if not remaining:
        # An ancestor path targets this whole list
        return list(range(len(node))) if isinstance(node, list) else []

    heads = sorted({path.split(".", 1)[0] for path in remaining})
    if isinstance(node, list):
        return [int(h) for h in heads if h.isdigit() and int(h) < len(node)]
    return [h for h in heads if h in node]


def _field_matches(fields: frozenset, field_name, node_key, prefix, in_list: bool) -> bool:
    if field_name in fields or str(node_key) in fields:
        return True
    if in_list and prefix is not None:
        return prefix in fields or prefix.rsplit(".", 1)[-1] in fields
    return False


def _walk(node, fields: frozenset, transform: Callable, traversal: Traversal, prefix):
    in_list = isinstance(node, list)
    if traversal is Traversal.DOCUMENT:
        node_keys = _document_keys(node, fields, prefix)
    else:
        node_keys = list(range(len(node))) if in_list else list(node.keys())

    for node_key in node_keys:
        if is_operator(node_key):
            field_name = prefix
        elif prefix is None:
            field_name = str(node_key)
        else:
            field_name = f"{prefix}.{node_key}"

        value = node[node_key]
        if isinstance(value, (dict, list)):
            _walk(value, fields, transform, traversal, field_name)
        elif value is not None and _field_matches(fields, field_name, node_key, prefix, in_list):
            node[node_key] = transform(value)


def process_object(
    obj: dict | list,
    fields: Iterable[str],
    key: bytes | str = None,
    mode: Mode | str = Mode.CIPHER,
    traversal: Traversal = Traversal.QUERY,
    rounds: int = None,
) -> None:
    """
    Transform matching leaves of obj in place.

    Args:
        obj: Document or query/update descriptor (dict or list), mutated.
        fields: Declared field paths.
        key: Key material, required for CIPHER and DECIPHER.
        mode: CIPHER, DECIPHER or HASH (enum member or its value).
        traversal: DOCUMENT or QUERY key enumeration.
        rounds: bcrypt cost factor for HASH mode.

    Raises:
        InvalidModeError: If mode is unknown.
        InvalidKeyError: If ciphering without proper key material.
    """
    mode = coerce_mode(mode)
    traversal = Traversal(traversal)
    fields = frozenset(fields)
    if not fields or obj is None:
        return
    _walk(obj, fields, _leaf_transform(mode, key, rounds), traversal, None)


def transformed(
    obj: dict | list,
    fields: Iterable[str],
    key: bytes | str = None,
    mode: Mode | str = Mode.CIPHER,
    traversal: Traversal = Traversal.QUERY,
    rounds: int = None,
) -> dict | list:
    """Like process_object(), but on a deep copy that is returned."""
    result = copy.deepcopy(obj)
    process_object(result, fields, key=key, mode=mode, traversal=traversal, rounds=rounds)
    return result
