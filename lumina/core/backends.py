"""
FILE: lumina/core/backends.py
PURPOSE: Interchangeable persistence backends for the state managers
EXPORTS:
  - EntityBackend: capability contract (get_all/insert/update/delete)
  - DurableBackend: whole-list JSON document under one store key
  - RelationalBackend: repository-backed rows in the embedded database
  - DurableTaskBackend / RelationalTaskBackend: add reorder()
DEPENDENCIES:
  - logging (stdlib)
  - lumina.core.storage (JsonStore, PersistentValue)
  - lumina.core.repository (TaskRepository, ProjectRepository)
NOTES:
  - Managers pick one backend per entity type from their backend state
  - Backends may raise on failure; the managers log and absorb errors
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Sequence

from .storage import JsonStore, PersistentValue

logger = logging.getLogger(__name__)


class EntityBackend(ABC):
    """Storage for one entity type (Task or Project)."""

    name = "backend"

    @abstractmethod
    def get_all(self) -> List[Any]:
        ...

    @abstractmethod
    def insert(self, entity) -> None:
        ...

    @abstractmethod
    def update(self, entity) -> None:
        ...

    @abstractmethod
    def delete(self, entity_id: str) -> None:
        ...


class DurableBackend(EntityBackend):
    """
    Entities kept as a JSON list of documents under a single store key.

    Every mutation rewrites the whole list.
    """

    name = "durable"

    def __init__(self, store: JsonStore, key: str, model, default: Sequence = ()) -> None:
        self._store = store
        self._model = model
        self._value = PersistentValue(
            store, key, [entity.to_dict() for entity in default]
        )

    @property
    def key(self) -> str:
        return self._value.key

    def _parse(self, documents) -> List[Any]:
        if not isinstance(documents, list):
            logger.warning("Store key %r does not hold a list; treating as empty", self.key)
            return []
        entities = []
        for doc in documents:
            try:
                entities.append(self._model.from_dict(doc))
            except (TypeError, ValueError, AttributeError) as e:
                logger.warning("Skipping unreadable entry under %r: %s", self.key, e)
        return entities

    def get_all(self) -> List[Any]:
        return self._parse(self._value.value)

    def _documents(self) -> List[Dict[str, Any]]:
        docs = self._value.value
        return list(docs) if isinstance(docs, list) else []

    def insert(self, entity) -> None:
        self._value.set(lambda prev: self._documents() + [entity.to_dict()])

    def update(self, entity) -> None:
        doc = entity.to_dict()
        self._value.set(
            lambda prev: [
                doc if isinstance(d, dict) and d.get("id") == entity.id else d
                for d in self._documents()
            ]
        )

    def delete(self, entity_id: str) -> None:
        self._value.set(
            lambda prev: [
                d for d in self._documents()
                if not (isinstance(d, dict) and d.get("id") == entity_id)
            ]
        )

    def subscribe(self, callback: Callable[[List[Any]], None]) -> Callable[[], None]:
        """Deliver the parsed entity list whenever another writer replaces it."""
        return self._store.subscribe(self.key, lambda docs: callback(self._parse(docs)))


class DurableTaskBackend(DurableBackend):

    def reorder(self, category: str, ordered_ids: Sequence[str]) -> None:
        positions = {task_id: index for index, task_id in enumerate(ordered_ids)}

        def apply(prev):
            docs = []
            for d in self._documents():
                if isinstance(d, dict) and d.get("id") in positions:
                    d = dict(d, order=positions[d["id"]])
                docs.append(d)
            return docs

        self._value.set(apply)


class RelationalBackend(EntityBackend):
    """Entities stored as rows through a repository."""

    name = "relational"

    def __init__(self, repository) -> None:
        self.repository = repository

    def get_all(self) -> List[Any]:
        return self.repository.get_all()

    def insert(self, entity) -> None:
        self.repository.insert(entity)

    def update(self, entity) -> None:
        self.repository.update(entity)

    def delete(self, entity_id: str) -> None:
        self.repository.delete(entity_id)


class RelationalTaskBackend(RelationalBackend):

    def reorder(self, category: str, ordered_ids: Sequence[str]) -> None:
        self.repository.reorder(category, ordered_ids)
