"""
fieldcloak — Basic Usage Example

Demonstrates a user collection whose PII fields are ciphered at rest but
still searchable, and whose password is hashed and checked through
authenticate().
"""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from fieldcloak import Model, Schema, cipher, decipher, hash_password, check_password
from fieldcloak import mark_fields_as_pii


def main():
    # 32 bytes of key material; load it from the environment in real code
    key = "59aad44db330ad2bf34f6730e50c0058"

    print("=" * 50)
    print("  fieldcloak — Searchable PII + hashed passwords")
    print("=" * 50)

    print("\n-- Primitives --")
    clear_text = "hello world this is nice"
    token = cipher(key, clear_text)
    print(f"{clear_text} -> {token}")
    print(f"{token} -> {decipher(key, token)}")
    hashed = hash_password(clear_text)
    print(f"{clear_text} -> {hashed} ({check_password(clear_text, hashed)})")

    schema = Schema("User")
    mark_fields_as_pii(
        schema,
        fields=["email", "firstName", "lastName"],
        key=key,
        password_fields="password",
    )
    users = Model("User", schema)

    attrs = {
        "address": "83 av. Philippe-Auguste 75011 Paris",
        "email": "christophe@example.com",
        "firstName": "Christophe",
        "lastName": "Porteneuve",
        "password": "foobar42",
    }

    print("\n-- Writes --")
    user = users.create(attrs)
    print(f"Created user: {user}")
    print(f"Stored as:    {users.store.find({'_id': user['_id']})[0]}")
    users.insert_many([attrs, attrs])

    print("\n-- Ciphered queries and updates --")
    updated = users.update_many({"email": attrs["email"]}, {"lastName": "Roberts"})
    print(f"update_many matched {updated} record(s)")
    fetched = users.find_one({"firstName": "Christophe", "lastName": "Roberts"})
    print(f"Fetched user: {fetched}")
    print(f"Count by email: {users.count({'email': attrs['email']})}")

    print("\n-- Authentication --")
    found = users.authenticate({"email": attrs["email"], "password": "foobar42"})
    print(f"Correct password: {'found ' + found['_id'] if found else 'no match'}")
    found = users.authenticate({"email": attrs["email"], "password": "nope"})
    print(f"Wrong password:   {'found ' + found['_id'] if found else 'no match'}")


if __name__ == "__main__":
    main()
