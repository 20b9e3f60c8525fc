"""
In-process record store.

Keeps deep copies of records in a list and understands the subset of
document-store query and update descriptors the Model needs:

  criteria   equality on dotted paths, list values as membership,
             nested dicts as subset matches, array fields containing
             a scalar criterion
  operators  $eq $ne $in $nin $gt $gte $lt $lte $exists $and $or
  updates    $set $unset $inc, plain keys behave like $set

Useful for tests, demos and as a reference for real backends.
"""

import copy
import operator
import uuid
from typing import Iterator

from fieldcloak.authentication import set_path
from fieldcloak.stores.base import RecordStore
from fieldcloak.traversal import is_operator


_MISSING = object()

_ORDERING = {
    "$gt": operator.gt,
    "$gte": operator.ge,
    "$lt": operator.lt,
    "$lte": operator.le,
}


def get_path(record, path: str):
    """Read a dotted path, or return the _MISSING sentinel."""
    node = record
    for segment in path.split("."):
        if isinstance(node, dict) and segment in node:
            node = node[segment]
        elif isinstance(node, list) and segment.isdigit() and int(segment) < len(node):
            node = node[int(segment)]
        else:
            return _MISSING
    return node


def _equals(actual, expected) -> bool:
    if actual is _MISSING:
        return expected is None
    if isinstance(actual, list) and not isinstance(expected, list):
        return expected in actual
    return actual == expected


def _is_in(actual, options) -> bool:
    return any(_equals(actual, option) for option in options)


def _operator_matches(op: str, actual, argument) -> bool:
    if op == "$eq":
        return _equals(actual, argument)
    if op == "$ne":
        return not _equals(actual, argument)
    if op == "$in":
        return _is_in(actual, argument)
    if op == "$nin":
        return not _is_in(actual, argument)
    if op == "$exists":
        return (actual is not _MISSING) == bool(argument)
    if op in _ORDERING:
        if actual is _MISSING:
            return False
        try:
            return _ORDERING[op](actual, argument)
        except TypeError:
            return False
    raise ValueError(f"Unsupported query operator: {op}")


def _value_matches(actual, criterion) -> bool:
    if isinstance(criterion, dict) and criterion and all(is_operator(k) for k in criterion):
        return all(_operator_matches(op, actual, arg) for op, arg in criterion.items())
    if isinstance(criterion, dict):
        if not isinstance(actual, dict):
            return False
        return all(
            _value_matches(actual.get(name, _MISSING), sub)
            for name, sub in criterion.items()
        )
    if isinstance(criterion, list):
        return actual == criterion or _is_in(actual, criterion)
    return _equals(actual, criterion)


def matches(record: dict, query: dict = None) -> bool:
    """Whether a record satisfies a query descriptor."""
    for name, criterion in (query or {}).items():
        if name == "$and":
            if not all(matches(record, sub) for sub in criterion):
                return False
        elif name == "$or":
            if not any(matches(record, sub) for sub in criterion):
                return False
        elif is_operator(name):
            raise ValueError(f"Unsupported query operator: {name}")
        elif not _value_matches(get_path(record, name), criterion):
            return False
    return True


def _unset(record: dict, path: str) -> None:
    *parents, leaf = path.split(".")
    container = get_path(record, ".".join(parents)) if parents else record
    if isinstance(container, dict):
        container.pop(leaf, None)


def apply_update(record: dict, update: dict) -> None:
    """Apply an update descriptor to a record in place."""
    for name, value in update.items():
        if name == "$set":
            for path, new_value in value.items():
                set_path(record, path, copy.deepcopy(new_value))
        elif name == "$unset":
            for path in value:
                _unset(record, path)
        elif name == "$inc":
            for path, amount in value.items():
                current = get_path(record, path)
                set_path(record, path, (0 if current is _MISSING else current) + amount)
        elif is_operator(name):
            raise ValueError(f"Unsupported update operator: {name}")
        else:
            set_path(record, name, copy.deepcopy(value))


class MemoryStore(RecordStore):
    """
    Record store held in process memory.

    Every record going in or out is deep-copied, so callers never share
    state with the stored data.
    """

    def __init__(self):
        self._records: list[dict] = []

    def _index_of(self, record_id) -> int | None:
        for index, stored in enumerate(self._records):
            if stored["_id"] == record_id:
                return index
        return None

    def _matching(self, query: dict = None, limit: int = None) -> list[dict]:
        found = []
        for stored in self._records:
            if matches(stored, query):
                found.append(stored)
                if limit is not None and len(found) >= limit:
                    break
        return found

    def insert_one(self, record: dict) -> str:
        record.setdefault("_id", uuid.uuid4().hex)
        if self._index_of(record["_id"]) is not None:
            raise ValueError(f"Duplicate _id: {record['_id']}")
        self._records.append(copy.deepcopy(record))
        return record["_id"]

    def save(self, record: dict) -> str:
        index = self._index_of(record["_id"]) if "_id" in record else None
        if index is None:
            return self.insert_one(record)
        self._records[index] = copy.deepcopy(record)
        return record["_id"]

    def find(self, query: dict = None, limit: int = None) -> list[dict]:
        return [copy.deepcopy(r) for r in self._matching(query, limit)]

    def update_many(self, query: dict, update: dict, limit: int = None) -> int:
        found = self._matching(query, limit)
        for stored in found:
            apply_update(stored, update)
        return len(found)

    def replace_one(self, query: dict, replacement: dict) -> int:
        found = self._matching(query, limit=1)
        if not found:
            return 0
        index = self._index_of(found[0]["_id"])
        record = copy.deepcopy(replacement)
        record["_id"] = found[0]["_id"]
        self._records[index] = record
        return 1

    def delete_many(self, query: dict, limit: int = None) -> list[dict]:
        found = self._matching(query, limit)
        doomed = {id(r) for r in found}
        self._records = [r for r in self._records if id(r) not in doomed]
        return [copy.deepcopy(r) for r in found]

    def count(self, query: dict = None) -> int:
        return len(self._matching(query))

    def estimated_count(self) -> int:
        return len(self._records)

    def cursor(self, batch_size: int = 10) -> Iterator[dict]:
        snapshot = list(self._records)
        for start in range(0, len(snapshot), batch_size):
            for stored in snapshot[start:start + batch_size]:
                yield copy.deepcopy(stored)
