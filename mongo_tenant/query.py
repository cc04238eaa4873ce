# mongo_tenant/query.py
from __future__ import annotations

import copy
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from mongo_tenant.document import Document
from mongo_tenant.guard import resolve_populate_model


class Query:
    """
    Deferred find. Nothing is sent to the store until exec()/first()/iteration,
    and the tenant predicate is applied by the issuing handle at that point.
    """

    def __init__(self, model, filter: Optional[Dict[str, Any]] = None, projection=None):
        self.model = model
        self.filter = dict(filter or {})
        self.projection = projection
        self._sort: Optional[List[Tuple[str, int]]] = None
        self._skip = 0
        self._limit = 0
        self._populate: List[str] = []

    def sort(self, key_or_list: Union[str, List[Tuple[str, int]]], direction: int = 1) -> "Query":
        if isinstance(key_or_list, str):
            key_or_list = [(key_or_list, direction)]
        self._sort = list(key_or_list)
        return self

    def skip(self, n: int) -> "Query":
        self._skip = int(n)
        return self

    def limit(self, n: int) -> "Query":
        self._limit = int(n)
        return self

    def populate(self, *paths: str) -> "Query":
        refs = self.model.schema.refs()
        for path in paths:
            if path not in refs:
                raise ValueError(f"{self.model.name}.{path} is not a reference field")
            self._populate.append(path)
        return self

    def exec(self) -> List[Document]:
        cursor = self.model.cursor(
            self.filter,
            projection=self.projection,
            sort=self._sort,
            skip=self._skip,
            limit=self._limit,
        )
        docs = [self.model.hydrate(raw) for raw in cursor]
        for path in self._populate:
            self._populate_path(docs, path)
        return docs

    def first(self) -> Optional[Document]:
        # limit a copy so this query keeps its own limit
        q = copy.copy(self)
        q._limit = 1
        docs = q.exec()
        return docs[0] if docs else None

    def __iter__(self) -> Iterator[Document]:
        return iter(self.exec())

    # -------------------------
    # populate
    # -------------------------
    def _populate_path(self, docs: List[Document], path: str) -> None:
        model_name, is_list = self.model.schema.refs()[path]
        target = resolve_populate_model(self.model, self.model.connection.get_model(model_name))

        ids = []
        for doc in docs:
            value = doc.get(path)
            if value is None:
                continue
            ids.extend(value if is_list else [value])
        if not ids:
            return

        found = {child.id: child for child in target.find({"_id": {"$in": ids}}).exec()}
        for doc in docs:
            value = doc.get(path)
            if value is None:
                continue
            if is_list:
                dict.__setitem__(doc, path, [found[ref] for ref in value if ref in found])
            else:
                dict.__setitem__(doc, path, found.get(value))
