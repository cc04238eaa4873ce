# mongo_tenant/schema.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

from mongo_tenant.settings import settings

_FALSE_STRINGS = ("", "0", "false", "no", "off", "n", "f")


def _to_bool(value: Any) -> bool:
    # "false", "0", "off" and friends cast to False, unlike bool()
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_STRINGS
    return bool(value)


@dataclass(frozen=True)
class Ref:
    """
    Reference to documents of another registered model.
    Declare `[Ref("Child")]` for an array of references.
    """
    model_name: str


@dataclass(frozen=True)
class TenantConfig:
    """
    Tenant options of one entity type. Fixed once the model is compiled.
    """
    tenant_id_key: str = field(default_factory=lambda: settings.tenant_id_key)
    tenant_id_type: Optional[Callable[[Any], Any]] = None
    enabled: bool = True
    require_tenant_id: bool = False
    accessors: bool = True
    accessor_method: str = "by_tenant"
    tenant_id_getter: str = "get_tenant_id"


class Schema:
    def __init__(
        self,
        fields: Optional[Dict[str, Any]] = None,
        *,
        discriminator_key: str = "__t",
        required: Iterable[str] = (),
        tenant: Optional[TenantConfig] = None,
    ):
        self.fields: Dict[str, Any] = dict(fields or {})
        self.discriminator_key = discriminator_key
        self.required: Tuple[str, ...] = tuple(required)
        self.tenant: Optional[TenantConfig] = None
        self.compiled = False
        if tenant is not None:
            self.set_tenant(tenant)

    def set_tenant(self, config: TenantConfig) -> None:
        if self.compiled:
            raise ValueError("tenant configuration cannot change after the model is compiled")
        if self.tenant is not None:
            raise ValueError("schema already has a tenant configuration")
        self.tenant = config
        if config.tenant_id_type is not None:
            self.fields[config.tenant_id_key] = config.tenant_id_type

    @property
    def tenant_enabled(self) -> bool:
        return self.tenant is not None and self.tenant.enabled

    def required_fields(self) -> Tuple[str, ...]:
        names = list(self.required)
        if self.tenant_enabled and self.tenant.require_tenant_id:
            names.append(self.tenant.tenant_id_key)
        return tuple(names)

    def cast(self, name: str, value: Any) -> Any:
        kind = self.fields.get(name)
        if value is None or kind is None or isinstance(kind, (Ref, list)):
            return value
        if kind is bool:
            return _to_bool(value)
        return kind(value)

    def refs(self) -> Dict[str, Tuple[str, bool]]:
        out = {}
        for name, kind in self.fields.items():
            if isinstance(kind, Ref):
                out[name] = (kind.model_name, False)
            elif isinstance(kind, list) and kind and isinstance(kind[0], Ref):
                out[name] = (kind[0].model_name, True)
        return out

    def extend(self, other: "Schema") -> "Schema":
        """
        Schema of a discriminator sub-type: parent fields plus the sub-type's.
        Tenant configuration and discriminator key always come from the parent.
        """
        merged = Schema(
            {**self.fields, **other.fields},
            discriminator_key=self.discriminator_key,
            required=tuple(dict.fromkeys(self.required + other.required)),
        )
        merged.tenant = self.tenant
        return merged

    def __repr__(self) -> str:
        return f"Schema(fields={sorted(self.fields)}, tenant={self.tenant!r})"


def mongo_tenant(schema: Schema, **options: Any) -> Schema:
    """
    Plugin entry point:
        schema = mongo_tenant(Schema({"name": str}), tenant_id_key="orgId")
    """
    schema.set_tenant(TenantConfig(**options))
    return schema
