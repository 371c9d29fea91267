"""Document store abstractions and implementations.

The search core consumes the store only through ``run_query``. Real
deployments plug in their own adapter; ``InMemoryDocumentStore`` backs tests
and local development.
"""

from abc import ABC, abstractmethod
import asyncio
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime
import logging
from typing import Any

from sports_search.errors import DocumentStoreError


logger = logging.getLogger(__name__)

PredicateTuple = tuple[str, str, Any]

SUPPORTED_OPERATORS = frozenset(
    {"==", "!=", "<", "<=", ">", ">=", "in", "not-in", "array-contains", "array-contains-any"}
)


class AbstractDocumentStore(ABC):
    """Abstract query interface over named collections of raw documents."""

    @abstractmethod
    async def run_query(
        self,
        collection: str,
        predicates: Sequence[PredicateTuple] = (),
        order_by: tuple[str, str] | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Return raw documents of ``collection`` satisfying every predicate.

        Args:
            collection: Collection name (users, videos, events)
            predicates: ``(field, op, value)`` tuples, AND'd together
            order_by: Optional ``(field, "asc" | "desc")``
            limit: Optional maximum number of documents

        Raises:
            DocumentStoreError: When the store cannot be reached or read
        """
        raise NotImplementedError


def _comparable(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.timestamp()
    return value


def _evaluate(document: Mapping[str, Any], predicate: PredicateTuple) -> bool:
    field, op, expected = predicate
    actual = document.get(field)
    if op == "==":
        return actual == expected
    if op == "!=":
        return actual is not None and actual != expected
    if op == "in":
        return actual in tuple(expected)
    if op == "not-in":
        return actual is not None and actual not in tuple(expected)
    if op == "array-contains":
        return isinstance(actual, (list, tuple)) and expected in actual
    if op == "array-contains-any":
        return isinstance(actual, (list, tuple)) and any(item in actual for item in expected)
    if actual is None:
        return False
    try:
        left, right = _comparable(actual), _comparable(expected)
        if op == "<":
            return left < right
        if op == "<=":
            return left <= right
        if op == ">":
            return left > right
        if op == ">=":
            return left >= right
    except TypeError:
        return False
    raise ValueError(f"Unsupported operator: {op}")


def _sort_key(field: str):
    def key(document: Mapping[str, Any]) -> tuple[int, Any]:
        value = document.get(field)
        if value is None:
            return (0, 0)
        return (1, _comparable(value))

    return key


class InMemoryDocumentStore(AbstractDocumentStore):
    """Dictionary-backed store with the same predicate semantics as a real one.

    ``latency`` delays every query; ``fail_with`` makes every query raise.
    ``query_count`` and ``queries`` record what the core asked for.
    """

    def __init__(
        self,
        collections: Mapping[str, Iterable[Mapping[str, Any]]] | None = None,
        *,
        latency: float = 0.0,
    ):
        self._collections: dict[str, list[dict[str, Any]]] = {
            name: [dict(document) for document in documents] for name, documents in (collections or {}).items()
        }
        self.latency = latency
        self.fail_with: BaseException | None = None
        self.query_count = 0
        self.queries: list[tuple[str, tuple[PredicateTuple, ...], tuple[str, str] | None, int | None]] = []

    def add(self, collection: str, document: Mapping[str, Any]) -> None:
        self._collections.setdefault(collection, []).append(dict(document))

    def remove(self, collection: str, document_id: str) -> bool:
        documents = self._collections.get(collection, [])
        for index, document in enumerate(documents):
            if str(document.get("id")) == document_id:
                del documents[index]
                return True
        return False

    async def run_query(
        self,
        collection: str,
        predicates: Sequence[PredicateTuple] = (),
        order_by: tuple[str, str] | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        self.query_count += 1
        self.queries.append((collection, tuple(predicates), order_by, limit))

        if self.latency:
            await asyncio.sleep(self.latency)
        if self.fail_with is not None:
            raise self.fail_with

        for predicate in predicates:
            if predicate[1] not in SUPPORTED_OPERATORS:
                raise DocumentStoreError(f"Unsupported operator: {predicate[1]}", collection=collection)

        documents = [
            document
            for document in self._collections.get(collection, [])
            if all(_evaluate(document, predicate) for predicate in predicates)
        ]
        if order_by is not None:
            field, direction = order_by
            documents.sort(key=_sort_key(field), reverse=direction.lower() == "desc")
        if limit is not None:
            documents = documents[:limit]

        logger.debug("Store query on %s returned %d documents", collection, len(documents))
        return [dict(document) for document in documents]
