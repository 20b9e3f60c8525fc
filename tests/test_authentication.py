"""
Tests for the authentication splitter and verifier.
"""

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from fieldcloak.authentication import (
    SplitFields,
    authenticate,
    authenticate_async,
    set_path,
    split_authentication_fields,
    walk_document_password_fields,
)
from fieldcloak.errors import AuthenticationInputError
from fieldcloak.passwords import hash_password


PASSWORD_FIELDS = ["password", "a.b.secret"]


def fetcher(records):
    """A fetch callable that records the queries it receives."""
    def fetch(query):
        fetch.queries.append(query)
        return [r for r in records if all(r.get(k) == v for k, v in query.items())]
    fetch.queries = []
    return fetch


def test_split_toplevel_fields():
    print("Testing split (top level)...", end=" ")
    fields = {"email": "foo@bar.com", "password": "foobar"}
    assert split_authentication_fields(fields, ["password"]) == SplitFields(
        query={"email": "foo@bar.com"},
        passwords={"password": "foobar"},
    )
    print("PASS")


def test_split_nested_fields():
    print("Testing split (nested)...", end=" ")
    fields = {
        "email": "foo@bar.com",
        "password": "foobar",
        "admin": {"role": "manager", "password": "quuxdoo"},
    }
    split = split_authentication_fields(fields, ["password", "admin.password"])
    assert split.query == {"email": "foo@bar.com", "admin": {"role": "manager"}}
    assert split.passwords == {"password": "foobar", "admin": {"password": "quuxdoo"}}
    # The input is left untouched
    assert fields["admin"] == {"role": "manager", "password": "quuxdoo"}
    print("PASS")


def test_split_keeps_operators_in_query():
    print("Testing split with operators...", end=" ")
    fields = {"age": {"$gte": 18}, "password": "foobar"}
    split = split_authentication_fields(fields, ["password"])
    assert split.query == {"age": {"$gte": 18}}
    assert split.passwords == {"password": "foobar"}
    print("PASS")


def test_set_path_on_existing_containers():
    print("Testing set_path (existing)...", end=" ")
    obj = {"foo": "bar", "xyz": 123}
    set_path(obj, "foo", "baz")
    assert obj == {"foo": "baz", "xyz": 123}
    obj["nested"] = {"abc": "def", "ghi": "jkl"}
    set_path(obj, "nested.ghi", "JKL")
    set_path(obj, "nested.mno", "pqr")
    assert obj["nested"] == {"abc": "def", "ghi": "JKL", "mno": "pqr"}
    print("PASS")


def test_set_path_creates_containers():
    print("Testing set_path (missing containers)...", end=" ")
    obj = {"foo": "bar", "xyz": 123, "nested": {"abc": "def"}}
    set_path(obj, "nested.deeper.wow", "much win")
    set_path(obj, "parallel.yowza", "such code")
    assert obj == {
        "foo": "bar",
        "xyz": 123,
        "nested": {"abc": "def", "deeper": {"wow": "much win"}},
        "parallel": {"yowza": "such code"},
    }
    print("PASS")


def test_walk_pairs_nested_fields():
    print("Testing password pairing...", end=" ")
    doc = {"password": "hashedPassword", "admin": {"password": "hashedAdminPassword"}, "foo": "bar"}
    passwords = {"password": "password", "admin": {"password": "adminPassword"}}
    assert walk_document_password_fields(doc, passwords) == [
        ("password", "hashedPassword"),
        ("adminPassword", "hashedAdminPassword"),
    ]
    print("PASS")


def test_walk_defaults_missing_hashes_to_empty():
    print("Testing fail-closed pairing...", end=" ")
    doc = {"password": "hashedPassword", "foo": "bar"}
    passwords = {"password": "password", "admin": {"password": "adminPassword"}}
    assert walk_document_password_fields(doc, passwords) == [
        ("password", "hashedPassword"),
        ("adminPassword", ""),
    ]
    # A scalar where a container is expected counts as missing too
    assert walk_document_password_fields({"admin": "nope"}, {"admin": {"password": "x"}}) == [
        ("x", ""),
    ]
    print("PASS")


def test_requires_a_password_field():
    """The error comes before any store access."""
    print("Testing missing password field...", end=" ")
    fetch = fetcher([])
    try:
        authenticate(fetch, {"email": "x"}, ["password"])
        assert False, "should have raised AuthenticationInputError"
    except AuthenticationInputError as e:
        assert "No password field" in str(e)
    assert fetch.queries == []
    print("PASS")


def test_authenticate_across_multiple_fields():
    print("Testing multi-field authentication...", end=" ")
    records = [
        {"_id": 1, "password": hash_password("toplevel")},
        {"_id": 2, "password": hash_password("toplevel"), "a": {"b": {"secret": hash_password("yo")}}},
    ]
    fetch = fetcher(records)

    found = authenticate(fetch, {"password": "toplevel", "a": {"b": {"secret": "yo"}}}, PASSWORD_FIELDS)
    assert found["_id"] == 2
    assert fetch.queries == [{}]

    # Record 1 lacks a.b.secret: it never matches
    found = authenticate(fetch, {"password": "toplevel", "a": {"b": {"secret": "yo"}}}, PASSWORD_FIELDS, single=False)
    assert [r["_id"] for r in found] == [2]

    assert authenticate(fetch, {"password": "toplevel", "a": {"b": {"secret": "no"}}}, PASSWORD_FIELDS) is None
    print("PASS")


def test_authenticate_single_and_multi():
    print("Testing single/multi results...", end=" ")
    records = [
        {"_id": 1, "email": "query@example.com", "password": hash_password("query")},
        {"_id": 2, "email": "query@example.net", "password": hash_password("query")},
    ]
    fetch = fetcher(records)

    assert authenticate(fetch, {"password": "query"}, ["password"])["_id"] == 1
    assert len(authenticate(fetch, {"password": "query"}, ["password"], single=False)) == 2
    assert authenticate(fetch, {"email": "query@example.com", "password": "query"}, ["password"])["_id"] == 1
    assert authenticate(fetch, {"email": "query@example.org", "password": "query"}, ["password"]) is None
    assert authenticate(fetch, {"password": "wrong"}, ["password"], single=False) == []
    assert fetch.queries[2] == {"email": "query@example.com"}
    print("PASS")


def test_authenticate_async():
    print("Testing async authentication...", end=" ")
    records = [
        {"_id": 1, "password": hash_password("toplevel")},
        {"_id": 2, "password": hash_password("toplevel"), "a": {"b": {"secret": hash_password("yo")}}},
        {"_id": 3, "password": hash_password("toplevel"), "a": {"b": {"secret": hash_password("yo")}}},
    ]
    fetch = fetcher(records)
    combined = {"password": "toplevel", "a": {"b": {"secret": "yo"}}}

    first = asyncio.run(authenticate_async(fetch, combined, PASSWORD_FIELDS))
    every = asyncio.run(authenticate_async(fetch, combined, PASSWORD_FIELDS, single=False))
    assert first["_id"] == 2
    assert [r["_id"] for r in every] == [2, 3]

    try:
        asyncio.run(authenticate_async(fetch, {"email": "x"}, PASSWORD_FIELDS))
        assert False, "should have raised AuthenticationInputError"
    except AuthenticationInputError:
        pass
    print("PASS")


if __name__ == "__main__":
    print("Testing authentication...\n")
    test_split_toplevel_fields()
    test_split_nested_fields()
    test_split_keeps_operators_in_query()
    test_set_path_on_existing_containers()
    test_set_path_creates_containers()
    test_walk_pairs_nested_fields()
    test_walk_defaults_missing_hashes_to_empty()
    test_requires_a_password_field()
    test_authenticate_across_multiple_fields()
    test_authenticate_single_and_multi()
    test_authenticate_async()
    print(f"\n{'='*50}")
    print("All 11 authentication tests passed!")
