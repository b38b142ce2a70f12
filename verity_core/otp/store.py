"""
Document Store
==============
Persistence interface consumed by the OTP subsystem.
"""

import asyncio
import copy
import uuid
from typing import Any, Dict, List, Protocol, Tuple


class DocumentStore(Protocol):
    """
    Minimal document-store contract.

    Uniqueness is never delegated to the store: callers enforce
    at-most-one-active invariants with explicit delete-then-create.
    """

    async def create(self, collection: str, document: Dict[str, Any]) -> str:
        ...

    async def query(self, collection: str, **equals: Any) -> List[Tuple[str, Dict[str, Any]]]:
        ...

    async def update(self, collection: str, document_id: str, **fields: Any) -> None:
        ...

    async def delete(self, collection: str, document_id: str) -> None:
        ...


class InMemoryDocumentStore:
    """
    Dict-backed ``DocumentStore``.

    For tests and single-process deployments. Documents are deep-copied
    in and out so callers cannot mutate stored state by reference.
    """

    def __init__(self):
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = asyncio.Lock()

    async def create(self, collection: str, document: Dict[str, Any]) -> str:
        document_id = uuid.uuid4().hex
        async with self._lock:
            self._collections.setdefault(collection, {})[document_id] = copy.deepcopy(document)
        return document_id

    async def query(self, collection: str, **equals: Any) -> List[Tuple[str, Dict[str, Any]]]:
        async with self._lock:
            documents = self._collections.get(collection, {})
            return [
                (document_id, copy.deepcopy(document))
                for document_id, document in documents.items()
                if all(document.get(name) == value for name, value in equals.items())
            ]

    async def update(self, collection: str, document_id: str, **fields: Any) -> None:
        async with self._lock:
            document = self._collections.get(collection, {}).get(document_id)
            if document is None:
                raise KeyError(f"{collection}/{document_id} does not exist")
            document.update(copy.deepcopy(fields))

    async def delete(self, collection: str, document_id: str) -> None:
        async with self._lock:
            self._collections.get(collection, {}).pop(document_id, None)

    def count(self, collection: str) -> int:
        return len(self._collections.get(collection, {}))
