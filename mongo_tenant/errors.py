# mongo_tenant/errors.py
from __future__ import annotations

from typing import Dict


class MongoTenantError(Exception):
    pass


class ValidationError(MongoTenantError):
    """
    Raised before any store call when a document misses required fields.
    """

    def __init__(self, model_name: str, errors: Dict[str, str]):
        self.model_name = model_name
        self.errors = dict(errors)
        fields = ", ".join(sorted(self.errors))
        super().__init__(f"{model_name} validation failed: {fields}")


class UnknownModelError(MongoTenantError, KeyError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Model {name!r} is not registered on this connection")

    def __str__(self) -> str:
        return self.args[0]
