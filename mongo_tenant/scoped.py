# mongo_tenant/scoped.py
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Union

from mongo_tenant.db.tenant import (
    enforce_tenant_filter,
    enforce_tenant_pipeline,
    enforce_tenant_update,
)
from mongo_tenant.document import Document
from mongo_tenant.query import Query
from mongo_tenant.stamper import stamp

log = logging.getLogger(__name__)


class TenantBoundModel:
    """
    A model view bound to one tenant value.

    Offers the same operations as the base model and delegates to it, but
    every filter, update, pipeline and new document passes through the
    tenant rewriters first. The base model itself is never modified.
    """

    has_tenant_context = True

    def __init__(self, base, tenant_id: Any):
        self.base = base
        self.tenant_id = base.schema.cast(base.get_tenant_id_key(), tenant_id)
        self._variants: Dict[str, "TenantBoundModel"] = {}
        log.debug("tenant handle %s tenant=%r", base.name, self.tenant_id)

    def __repr__(self) -> str:
        return f"<TenantBoundModel {self.base.name} tenant={self.tenant_id!r}>"

    def __getattr__(self, name: str):
        # custom getter name, e.g. tenant_config.tenant_id_getter = "org_id"
        base = self.__dict__.get("base")
        config = base.tenant_config if base is not None else None
        if config is not None and config.accessors and name == config.tenant_id_getter:
            return self.get_tenant_id
        raise AttributeError(f"{type(self).__name__!s} object has no attribute {name!r}")

    # -------------------------
    # identity / configuration
    # -------------------------
    @property
    def name(self) -> str:
        return self.base.name

    @property
    def schema(self):
        return self.base.schema

    @property
    def connection(self):
        return self.base.connection

    @property
    def collection(self):
        return self.base.collection

    @property
    def tenant_config(self):
        return self.base.tenant_config

    def get_tenant_id(self) -> Any:
        return self.tenant_id

    def get_tenant_id_key(self) -> str:
        return self.base.get_tenant_id_key()

    def is_tenant_aware(self) -> bool:
        return True

    def by_tenant(self, tenant_id: Any) -> "TenantBoundModel":
        return self.base.by_tenant(tenant_id)

    def discriminator_model(self, name: str) -> "TenantBoundModel":
        return self._bind_variant(self.base.discriminators[name])

    # -------------------------
    # rewriting
    # -------------------------
    def _filter(self, filter: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        return enforce_tenant_filter(self.get_tenant_id_key(), self.tenant_id, filter)

    def _update(self, update: Dict[str, Any], overwrite: bool) -> Dict[str, Any]:
        return enforce_tenant_update(self.get_tenant_id_key(), self.tenant_id, update, overwrite=overwrite)

    def _bind_variant(self, model) -> "TenantBoundModel":
        if model is self.base:
            return self
        if model.name not in self._variants:
            self._variants[model.name] = TenantBoundModel(model, self.tenant_id)
        return self._variants[model.name]

    def _adopt(self, doc: Optional[Document]) -> Optional[Document]:
        if doc is None:
            return None
        doc.model = self._bind_variant(doc.model)
        doc.mark_tenant_context()
        return doc

    def _stamp(self, doc: Document) -> Document:
        return stamp(doc, self.get_tenant_id_key(), self.tenant_id)

    # -------------------------
    # store-facing primitives (used by Query and Document)
    # -------------------------
    def cursor(self, filter=None, **kwargs):
        return self.base.cursor(self._filter(filter), **kwargs)

    def hydrate(self, raw: Optional[Dict[str, Any]]) -> Optional[Document]:
        return self._adopt(self.base.hydrate(raw))

    # -------------------------
    # construction
    # -------------------------
    def construct(self, data: Optional[Dict[str, Any]] = None) -> Document:
        return self._stamp(self._adopt(self.base.construct(data)))

    def new(self, data: Optional[Dict[str, Any]] = None, **fields: Any) -> Document:
        return self.construct({**(data or {}), **fields})

    def create(self, *docs: Dict[str, Any]) -> Union[Document, List[Document]]:
        created = self.insert_many(list(docs))
        return created[0] if len(docs) == 1 else created

    def insert_many(self, docs: Union[Dict[str, Any], Iterable[Dict[str, Any]]]) -> List[Document]:
        if isinstance(docs, dict):
            docs = [docs]
        built = [self.new(d) for d in docs]
        log.debug("insert %d into %s tenant=%r", len(built), self.name, self.tenant_id)
        return self.base.insert_documents(built)

    def save(self, document: Document) -> Optional[Document]:
        """
        The tenant field is forced back to the bound value, whatever the
        caller changed on the document since it was built. Returns None when
        the stored document is gone (or belongs to another tenant).
        """
        self._stamp(document)
        if document.is_new:
            self.base.insert_documents([document])
            return document
        if not self.base.update_document(document, self._filter({"_id": document.id})):
            return None
        return document

    def delete_document(self, document: Document):
        return self.base.collection.delete_one(self._filter({"_id": document.id}))

    # -------------------------
    # reads
    # -------------------------
    def find(self, filter: Optional[Dict[str, Any]] = None, projection=None) -> Query:
        return Query(self, filter, projection)

    def find_one(self, filter: Optional[Dict[str, Any]] = None, projection=None) -> Optional[Document]:
        return self._adopt(self.base.find_one(self._filter(filter), projection))

    def count_documents(self, filter: Optional[Dict[str, Any]] = None) -> int:
        return self.base.count_documents(self._filter(filter))

    count = count_documents

    def distinct(self, key: str, filter: Optional[Dict[str, Any]] = None) -> List[Any]:
        return self.base.distinct(key, self._filter(filter))

    def aggregate(self, pipeline: Optional[List[Dict[str, Any]]] = None) -> List[Dict[str, Any]]:
        return self.base.aggregate(
            enforce_tenant_pipeline(self.get_tenant_id_key(), self.tenant_id, pipeline)
        )

    # -------------------------
    # writes
    # -------------------------
    def find_one_and_delete(self, filter: Optional[Dict[str, Any]] = None) -> Optional[Document]:
        return self._adopt(self.base.find_one_and_delete(self._filter(filter)))

    find_one_and_remove = find_one_and_delete

    def find_one_and_update(
        self,
        filter: Optional[Dict[str, Any]],
        update: Dict[str, Any],
        *,
        new: bool = False,
        upsert: bool = False,
        overwrite: bool = False,
    ) -> Optional[Document]:
        return self._adopt(
            self.base.find_one_and_update(
                self._filter(filter),
                self._update(update, overwrite),
                new=new,
                upsert=upsert,
                overwrite=overwrite,
            )
        )

    def update(
        self,
        filter: Optional[Dict[str, Any]],
        update: Dict[str, Any],
        *,
        overwrite: bool = False,
        multi: bool = False,
        upsert: bool = False,
    ):
        return self.base.update(
            self._filter(filter),
            self._update(update, overwrite),
            overwrite=overwrite,
            multi=multi,
            upsert=upsert,
        )

    def update_one(self, filter, update, *, overwrite: bool = False, upsert: bool = False):
        return self.update(filter, update, overwrite=overwrite, upsert=upsert)

    def update_many(self, filter, update, *, overwrite: bool = False, upsert: bool = False):
        return self.update(filter, update, overwrite=overwrite, upsert=upsert, multi=True)

    def delete_one(self, filter: Optional[Dict[str, Any]] = None):
        return self.base.delete_one(self._filter(filter))

    def delete_many(self, filter: Optional[Dict[str, Any]] = None):
        return self.base.delete_many(self._filter(filter))
