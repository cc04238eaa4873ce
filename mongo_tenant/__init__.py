from mongo_tenant.document import Document
from mongo_tenant.errors import MongoTenantError, UnknownModelError, ValidationError
from mongo_tenant.model import Connection, Model
from mongo_tenant.query import Query
from mongo_tenant.schema import Ref, Schema, TenantConfig, mongo_tenant
from mongo_tenant.scoped import TenantBoundModel

__all__ = [
    "Connection",
    "Document",
    "Model",
    "MongoTenantError",
    "Query",
    "Ref",
    "Schema",
    "TenantBoundModel",
    "TenantConfig",
    "UnknownModelError",
    "ValidationError",
    "mongo_tenant",
]
