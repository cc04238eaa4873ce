# mongo_tenant/document.py
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from mongo_tenant.errors import ValidationError


class Document(dict):
    """
    One stored record. Field values live in the dict itself; `model` is the
    handle (base model or tenant-bound) the document was built or loaded through.
    """

    def __init__(self, model, data: Optional[Dict[str, Any]] = None, *, is_new: bool = True):
        super().__init__()
        self.model = model
        self.is_new = is_new
        self._tenant_context = False
        self._modified: Dict[str, None] = {}
        self._unset: Dict[str, None] = {}
        for key, value in (data or {}).items():
            self[key] = value
        if not is_new:
            self.mark_saved()

    def __setitem__(self, key: str, value: Any) -> None:
        super().__setitem__(key, self.model.schema.cast(key, value))
        self._modified[key] = None
        self._unset.pop(key, None)

    def __delitem__(self, key: str) -> None:
        super().__delitem__(key)
        self._modified.pop(key, None)
        self._unset[key] = None

    def pop(self, key: str, *default: Any) -> Any:
        had = key in self
        value = super().pop(key, *default)
        if had:
            self._modified.pop(key, None)
            self._unset[key] = None
        return value

    def update(self, *args: Any, **fields: Any) -> None:
        for key, value in dict(*args, **fields).items():
            self[key] = value

    def modified_fields(self) -> List[str]:
        return list(self._modified)

    def unset_fields(self) -> List[str]:
        return list(self._unset)

    def mark_saved(self) -> None:
        self.is_new = False
        self._modified.clear()
        self._unset.clear()

    @property
    def id(self):
        return self.get("_id")

    @property
    def has_tenant_context(self) -> bool:
        return self._tenant_context

    def mark_tenant_context(self) -> None:
        self._tenant_context = True

    def validate(self, fields: Optional[Iterable[str]] = None) -> None:
        """
        Check required fields. With `fields`, only those are checked (a
        partial save must not trip over fields that were never loaded).
        """
        required = self.model.schema.required_fields()
        if fields is not None:
            wanted = set(fields)
            required = [name for name in required if name in wanted]
        missing = {name: "required" for name in required if self.get(name) is None}
        if missing:
            raise ValidationError(self.model.name, missing)

    def to_mongo(self) -> Dict[str, Any]:
        return dict(self)

    def save(self) -> Optional["Document"]:
        return self.model.save(self)

    def delete(self):
        return self.model.delete_document(self)

    def __repr__(self) -> str:
        return f"<{self.model.name} {dict.__repr__(self)}>"
