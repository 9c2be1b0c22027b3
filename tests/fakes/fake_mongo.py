"""In-memory stand-in for the motor collection calls the services make."""

import asyncio
import copy
from types import SimpleNamespace
from typing import Any, Dict, Iterable, List, Optional

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError


def _compare(value: Any, op: str, operand: Any) -> bool:
    if op == "$in":
        return value in operand
    if op == "$ne":
        return value != operand
    if value is None:
        return False
    if op == "$gt":
        return value > operand
    if op == "$gte":
        return value >= operand
    if op == "$lt":
        return value < operand
    if op == "$lte":
        return value <= operand
    raise NotImplementedError(f"Operator {op} not supported by FakeCollection")


def matches(document: Dict[str, Any], query: Optional[Dict[str, Any]]) -> bool:
    for key, condition in (query or {}).items():
        value = document.get(key)
        if isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition):
            if not all(_compare(value, op, operand) for op, operand in condition.items()):
                return False
        elif value != condition:
            return False
    return True


def apply_update(document: Dict[str, Any], update: Dict[str, Any]) -> None:
    for op, fields in update.items():
        if op == "$set":
            document.update(fields)
        elif op == "$inc":
            for key, amount in fields.items():
                document[key] = document.get(key, 0) + amount
        else:
            raise NotImplementedError(f"Update operator {op} not supported by FakeCollection")


class FakeCursor:
    def __init__(self, documents: List[Dict[str, Any]]):
        self._documents = documents
        self._skip = 0
        self._limit = 0

    def sort(self, key: str, direction: int = 1) -> "FakeCursor":
        self._documents.sort(key=lambda d: d.get(key), reverse=direction < 0)
        return self

    def skip(self, count: int) -> "FakeCursor":
        self._skip = count
        return self

    def limit(self, count: int) -> "FakeCursor":
        self._limit = count
        return self

    async def to_list(self, length: Optional[int] = None) -> List[Dict[str, Any]]:
        documents = self._documents[self._skip:]
        if self._limit:
            documents = documents[:self._limit]
        if length is not None:
            documents = documents[:length]
        return [copy.deepcopy(d) for d in documents]


class FakeCollection:
    """
    Keeps documents in a list. `unique` lists fields that behave like a
    unique sparse index: documents without the field never collide.

    With `yield_control` every call first hands control back to the event
    loop, the way a real driver round-trip would, so concurrent tasks
    interleave. Each operation itself stays atomic.
    """

    def __init__(self, unique: Iterable[str] = (), yield_control: bool = False):
        self.docs: List[Dict[str, Any]] = []
        self.unique = tuple(unique)
        self.yield_control = yield_control

    async def _round_trip(self) -> None:
        if self.yield_control:
            await asyncio.sleep(0)

    def _check_unique(self, document: Dict[str, Any]) -> None:
        for field in self.unique:
            value = document.get(field)
            if value is None:
                continue
            if any(d.get(field) == value for d in self.docs if d["_id"] != document["_id"]):
                raise DuplicateKeyError(f"E11000 duplicate key error: {field}")

    def _first(self, query: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        return next((d for d in self.docs if matches(d, query)), None)

    async def insert_one(self, document: Dict[str, Any]):
        await self._round_trip()
        document.setdefault("_id", ObjectId())
        stored = copy.deepcopy(document)
        self._check_unique(stored)
        self.docs.append(stored)
        return SimpleNamespace(inserted_id=stored["_id"])

    async def find_one(self, query: Optional[Dict[str, Any]] = None):
        await self._round_trip()
        document = self._first(query)
        return copy.deepcopy(document) if document else None

    def find(self, query: Optional[Dict[str, Any]] = None) -> FakeCursor:
        return FakeCursor([d for d in self.docs if matches(d, query)])

    async def find_one_and_update(
        self,
        query: Dict[str, Any],
        update: Dict[str, Any],
        return_document: bool = ReturnDocument.BEFORE,
    ):
        await self._round_trip()
        document = self._first(query)
        if document is None:
            return None
        before = copy.deepcopy(document)
        apply_update(document, update)
        return copy.deepcopy(document) if return_document == ReturnDocument.AFTER else before

    async def update_one(self, query: Dict[str, Any], update: Dict[str, Any]):
        await self._round_trip()
        document = self._first(query)
        if document is None:
            return SimpleNamespace(matched_count=0, modified_count=0)
        before = copy.deepcopy(document)
        apply_update(document, update)
        return SimpleNamespace(matched_count=1, modified_count=int(before != document))

    async def delete_one(self, query: Dict[str, Any]):
        await self._round_trip()
        document = self._first(query)
        if document is None:
            return SimpleNamespace(deleted_count=0)
        self.docs.remove(document)
        return SimpleNamespace(deleted_count=1)

    async def count_documents(self, query: Optional[Dict[str, Any]] = None) -> int:
        await self._round_trip()
        return sum(1 for d in self.docs if matches(d, query))
