# mongo_tenant/model.py
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Union

from pymongo import ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database

from mongo_tenant.document import Document
from mongo_tenant.errors import UnknownModelError
from mongo_tenant.query import Query
from mongo_tenant.schema import Schema, TenantConfig

log = logging.getLogger(__name__)


class Connection:
    """
    Registry of compiled models over one database. References between
    models (populate) are resolved by model name through this registry.
    """

    def __init__(self, database: Database):
        self.db = database
        self.models: Dict[str, "Model"] = {}

    def model(self, name: str, schema: Schema, collection: Optional[str] = None) -> "Model":
        if name in self.models:
            raise ValueError(f"model {name!r} already registered")
        m = Model(self, name, schema, self.db[collection or name])
        self.models[name] = m
        return m

    def get_model(self, name: str) -> "Model":
        try:
            return self.models[name]
        except KeyError:
            raise UnknownModelError(name) from None

    def _register(self, model: "Model") -> None:
        if model.name in self.models:
            raise ValueError(f"model {model.name!r} already registered")
        self.models[model.name] = model


def _normalize_update(schema: Schema, update: Union[Dict[str, Any], List[Dict[str, Any]]]):
    """
    Flat fields become `$set` entries, like an implicit set.
    Pipeline updates (lists of stages) go to the store as they are.
    """
    if isinstance(update, list):
        return list(update)
    ops = {k: v for k, v in update.items() if k.startswith("$")}
    flat = {k: v for k, v in update.items() if not k.startswith("$")}
    if flat:
        ops["$set"] = {**(ops.get("$set") or {}), **flat}
    if isinstance(ops.get("$set"), dict):
        ops["$set"] = {k: schema.cast(k, v) for k, v in ops["$set"].items()}
    return ops


def _depopulate(value: Any) -> Any:
    if isinstance(value, Document):
        return value.id
    if isinstance(value, list):
        return [_depopulate(v) for v in value]
    return value


class Model:
    """
    Base entity type: an ordinary, tenant-unaware view of one collection.
    `by_tenant(value)` hands out tenant-bound handles over the same collection.
    """

    has_tenant_context = False

    def __init__(
        self,
        connection: Connection,
        name: str,
        schema: Schema,
        collection: Collection,
        *,
        parent: Optional["Model"] = None,
        discriminator_value: Optional[str] = None,
    ):
        self.connection = connection
        self.name = name
        self.schema = schema
        self.collection = collection
        self.parent = parent
        self.discriminator_value = discriminator_value
        self.discriminators: Dict[str, Model] = {}
        schema.compiled = True

    def __repr__(self) -> str:
        return f"<Model {self.name}>"

    def __getattr__(self, name: str):
        # custom accessor name, e.g. tenant_config.accessor_method = "for_org"
        schema = self.__dict__.get("schema")
        config = schema.tenant if schema is not None else None
        if config is not None and config.enabled and config.accessors and name == config.accessor_method:
            return self.by_tenant
        raise AttributeError(f"{type(self).__name__!s} object has no attribute {name!r}")

    # -------------------------
    # tenant configuration
    # -------------------------
    @property
    def base(self) -> "Model":
        return self

    @property
    def tenant_config(self) -> Optional[TenantConfig]:
        return self.schema.tenant

    def is_tenant_aware(self) -> bool:
        return self.schema.tenant_enabled

    def get_tenant_id_key(self) -> Optional[str]:
        if not self.is_tenant_aware():
            return None
        return self.tenant_config.tenant_id_key

    def by_tenant(self, tenant_id: Any):
        from mongo_tenant.scoped import TenantBoundModel

        if not self.is_tenant_aware():
            raise ValueError(f"model {self.name!r} is not tenant aware")
        if tenant_id is None:
            raise ValueError("tenant_id required")
        return TenantBoundModel(self, tenant_id)

    # -------------------------
    # discriminators
    # -------------------------
    def discriminator(self, name: str, schema: Schema) -> "Model":
        if self.parent is not None:
            return self.parent.discriminator(name, schema)
        sub = Model(
            self.connection,
            name,
            self.schema.extend(schema),
            self.collection,
            parent=self,
            discriminator_value=name,
        )
        self.connection._register(sub)
        self.discriminators[name] = sub
        return sub

    def variant_for(self, data: Optional[Dict[str, Any]]) -> "Model":
        """
        Sub-type selected by the discriminator tag in `data`, else self.
        """
        if not data or not self.discriminators:
            return self
        return self.discriminators.get(data.get(self.schema.discriminator_key), self)

    # -------------------------
    # store-facing primitives
    # -------------------------
    def prepare_filter(self, filter: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        f = {}
        for key, value in (filter or {}).items():
            f[key] = value if isinstance(value, (dict, list)) else self.schema.cast(key, value)
        if self.discriminator_value is not None:
            f[self.schema.discriminator_key] = self.discriminator_value
        return f

    def prepare_pipeline(self, pipeline: Optional[List[Dict[str, Any]]] = None) -> List[Dict[str, Any]]:
        stages = list(pipeline or [])
        if self.discriminator_value is not None:
            stages.insert(0, {"$match": {self.schema.discriminator_key: self.discriminator_value}})
        return stages

    def replacement(self, update):
        if not isinstance(update, dict):
            return update
        doc = dict(update)
        if self.discriminator_value is not None:
            doc[self.schema.discriminator_key] = self.discriminator_value
        return doc

    def to_raw(self, document: Document) -> Dict[str, Any]:
        raw = document.to_mongo()
        for path in self.schema.refs():
            if path in raw:
                raw[path] = _depopulate(raw[path])
        return raw

    def construct(self, data: Optional[Dict[str, Any]] = None) -> Document:
        model = self.variant_for(data)
        doc = Document(model, data)
        if model.discriminator_value is not None:
            doc[model.schema.discriminator_key] = model.discriminator_value
        return doc

    def hydrate(self, raw: Optional[Dict[str, Any]]) -> Optional[Document]:
        if raw is None:
            return None
        return Document(self.variant_for(raw), raw, is_new=False)

    def cursor(self, filter=None, *, projection=None, sort=None, skip=0, limit=0):
        f = self.prepare_filter(filter)
        log.debug("find %s filter=%r", self.name, f)
        cur = self.collection.find(f, projection, skip=skip, limit=limit)
        if sort:
            cur = cur.sort(sort)
        return cur

    def insert_documents(self, docs: List[Document]) -> List[Document]:
        """
        All-or-nothing as far as the caller can see: every document is
        validated first, and a store failure propagates without results.
        """
        for doc in docs:
            doc.validate()
        raws = [doc.model.base.to_raw(doc) for doc in docs]
        if not raws:
            return []
        if len(raws) == 1:
            ids = [self.collection.insert_one(raws[0]).inserted_id]
        else:
            ids = self.collection.insert_many(raws, ordered=True).inserted_ids
        for doc, _id in zip(docs, ids):
            dict.__setitem__(doc, "_id", _id)
            doc.mark_saved()
        log.debug("inserted %d into %s", len(docs), self.name)
        return docs

    def update_document(self, document: Document, filter: Dict[str, Any]) -> bool:
        """
        Write back the fields changed since the document was loaded or last
        saved. Fields that were projected out or never touched stay as stored,
        and a document deleted in the meantime is not re-created.
        Returns False when `filter` matched nothing.
        """
        changed = document.modified_fields()
        unset = document.unset_fields()
        document.validate(changed + unset)
        ops: Dict[str, Any] = {}
        if changed:
            raw = document.model.base.to_raw(document)
            ops["$set"] = {k: raw[k] for k in changed if k != "_id"}
        if unset:
            ops["$unset"] = {k: "" for k in unset if k != "_id"}
        ops = {op: fields for op, fields in ops.items() if fields}
        if ops:
            log.debug("save %s filter=%r fields=%r", self.name, filter, changed + unset)
            matched = self.collection.update_one(filter, ops).matched_count > 0
        else:
            matched = self.collection.find_one(filter, {"_id": 1}) is not None
        if matched:
            document.mark_saved()
        return matched

    # -------------------------
    # construction
    # -------------------------
    def new(self, data: Optional[Dict[str, Any]] = None, **fields: Any) -> Document:
        return self.construct({**(data or {}), **fields})

    def create(self, *docs: Dict[str, Any]) -> Union[Document, List[Document]]:
        """
        create({...}) -> Document; create({...}, {...}) -> [Document, ...]
        """
        created = self.insert_many(list(docs))
        return created[0] if len(docs) == 1 else created

    def insert_many(self, docs: Union[Dict[str, Any], Iterable[Dict[str, Any]]]) -> List[Document]:
        if isinstance(docs, dict):
            docs = [docs]
        return self.insert_documents([self.new(d) for d in docs])

    def save(self, document: Document) -> Optional[Document]:
        """
        Inserts a new document; otherwise updates its changed fields.
        Returns None when the stored document no longer exists.
        """
        if document.is_new:
            self.insert_documents([document])
            return document
        if not self.update_document(document, {"_id": document.id}):
            return None
        return document

    def delete_document(self, document: Document):
        return self.collection.delete_one({"_id": document.id})

    # -------------------------
    # reads
    # -------------------------
    def find(self, filter: Optional[Dict[str, Any]] = None, projection=None) -> Query:
        return Query(self, filter, projection)

    def find_one(self, filter: Optional[Dict[str, Any]] = None, projection=None) -> Optional[Document]:
        return self.hydrate(self.collection.find_one(self.prepare_filter(filter), projection))

    def count_documents(self, filter: Optional[Dict[str, Any]] = None) -> int:
        return self.collection.count_documents(self.prepare_filter(filter))

    # older name, same behavior
    count = count_documents

    def distinct(self, key: str, filter: Optional[Dict[str, Any]] = None) -> List[Any]:
        return self.collection.distinct(key, self.prepare_filter(filter))

    def aggregate(self, pipeline: Optional[List[Dict[str, Any]]] = None) -> List[Dict[str, Any]]:
        return list(self.collection.aggregate(self.prepare_pipeline(pipeline)))

    # -------------------------
    # writes
    # -------------------------
    def find_one_and_delete(self, filter: Optional[Dict[str, Any]] = None) -> Optional[Document]:
        return self.hydrate(self.collection.find_one_and_delete(self.prepare_filter(filter)))

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
        f = self.prepare_filter(filter)
        return_document = ReturnDocument.AFTER if new else ReturnDocument.BEFORE
        if overwrite:
            raw = self.collection.find_one_and_replace(
                f, self.replacement(update), upsert=upsert, return_document=return_document
            )
        else:
            raw = self.collection.find_one_and_update(
                f, _normalize_update(self.schema, update), upsert=upsert, return_document=return_document
            )
        return self.hydrate(raw)

    def update(
        self,
        filter: Optional[Dict[str, Any]],
        update: Dict[str, Any],
        *,
        overwrite: bool = False,
        multi: bool = False,
        upsert: bool = False,
    ):
        """
        overwrite=True sends `update` as a full replacement document. With
        multi=True the store rejects that combination and the error surfaces.
        """
        f = self.prepare_filter(filter)
        log.debug("update %s filter=%r multi=%s overwrite=%s", self.name, f, multi, overwrite)
        if overwrite:
            if multi:
                return self.collection.update_many(f, self.replacement(update), upsert=upsert)
            return self.collection.replace_one(f, self.replacement(update), upsert=upsert)
        doc = _normalize_update(self.schema, update)
        if multi:
            return self.collection.update_many(f, doc, upsert=upsert)
        return self.collection.update_one(f, doc, upsert=upsert)

    def update_one(self, filter, update, *, overwrite: bool = False, upsert: bool = False):
        return self.update(filter, update, overwrite=overwrite, upsert=upsert)

    def update_many(self, filter, update, *, overwrite: bool = False, upsert: bool = False):
        return self.update(filter, update, overwrite=overwrite, upsert=upsert, multi=True)

    def delete_one(self, filter: Optional[Dict[str, Any]] = None):
        return self.collection.delete_one(self.prepare_filter(filter))

    def delete_many(self, filter: Optional[Dict[str, Any]] = None):
        return self.collection.delete_many(self.prepare_filter(filter))
