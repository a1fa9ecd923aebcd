"""
Document store access for the `users` collections of the SSO, Encompass and
VMT databases, with a pymongo implementation and an in-memory one for tests.
"""

from __future__ import annotations

import copy
import re
import threading
from typing import Any, Optional, Protocol

from bson import ObjectId
from pymongo import MongoClient, ReturnDocument

USERS_COLLECTION = "users"


class UserStore(Protocol):
    """Interface for the operations we need on a `users` collection."""

    def find(self, filter: Optional[dict] = None) -> list[dict]:
        ...

    def find_one(self, filter: dict) -> Optional[dict]:
        ...

    def insert_one(self, document: dict) -> ObjectId:
        ...

    def update_one(self, filter: dict, fields: dict) -> Optional[dict]:
        ...

    def close(self) -> None:
        ...


def _value_matches(value: Any, condition: Any) -> bool:
    if isinstance(condition, dict) and condition and all(
        key.startswith("$") for key in condition
    ):
        for operator, operand in condition.items():
            if operator == "$ne":
                if _value_matches(value, operand):
                    return False
            elif operator == "$in":
                if not any(_value_matches(value, item) for item in operand):
                    return False
            elif operator == "$regex":
                flags = re.IGNORECASE if "i" in condition.get("$options", "") else 0
                if not isinstance(value, str) or not re.search(operand, value, flags):
                    return False
            elif operator == "$options":
                continue
            else:
                raise ValueError(f"Unsupported query operator: {operator}")
        return True
    # A missing field compares equal to None, as in a document store query.
    return value == condition


def matches(document: dict, filter: Optional[dict]) -> bool:
    """Return True when the document satisfies every clause of the filter."""
    for key, condition in (filter or {}).items():
        if not _value_matches(document.get(key), condition):
            return False
    return True


class InMemoryUserStore:
    """Simple in-memory collection for development and tests."""

    def __init__(self, documents: Optional[list[dict]] = None):
        self.documents: list[dict] = []
        self._lock = threading.Lock()
        for document in documents or []:
            self.insert_one(document)

    def find(self, filter: Optional[dict] = None) -> list[dict]:
        with self._lock:
            return [
                copy.deepcopy(doc) for doc in self.documents if matches(doc, filter)
            ]

    def find_one(self, filter: dict) -> Optional[dict]:
        with self._lock:
            for doc in self.documents:
                if matches(doc, filter):
                    return copy.deepcopy(doc)
        return None

    def insert_one(self, document: dict) -> ObjectId:
        record = copy.deepcopy(document)
        record.setdefault("_id", ObjectId())
        with self._lock:
            self.documents.append(record)
        return record["_id"]

    def update_one(self, filter: dict, fields: dict) -> Optional[dict]:
        with self._lock:
            for doc in self.documents:
                if matches(doc, filter):
                    doc.update(copy.deepcopy(fields))
                    return copy.deepcopy(doc)
        return None

    def reset(self) -> None:
        """Clear all stored documents (useful in tests)."""
        with self._lock:
            self.documents.clear()

    def close(self) -> None:
        return None


class MongoUserStore:
    """pymongo-backed store; the client is shared safely across threads."""

    def __init__(self, uri: str, collection: str = USERS_COLLECTION):
        self.uri = uri
        self._client = MongoClient(uri)
        self._collection = self._client.get_default_database()[collection]

    def find(self, filter: Optional[dict] = None) -> list[dict]:
        return list(self._collection.find(filter or {}))

    def find_one(self, filter: dict) -> Optional[dict]:
        return self._collection.find_one(filter)

    def insert_one(self, document: dict) -> ObjectId:
        result = self._collection.insert_one(document)
        return result.inserted_id

    def update_one(self, filter: dict, fields: dict) -> Optional[dict]:
        return self._collection.find_one_and_update(
            filter,
            {"$set": fields},
            return_document=ReturnDocument.AFTER,
        )

    def close(self) -> None:
        self._client.close()
