# inventory/errors.py
from typing import Any, Dict, Optional

# Domain errors raised by the store, validation layer and service.
# The HTTP layer maps each `code` to a status; nothing in the core catches them.


class CatalogError(Exception):
    code = "catalog_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "detail": self.message, **self.details}


class InvalidInput(CatalogError):
    """A field or filter parameter violates a static constraint."""

    code = "invalid_input"

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message, details={"field": field})


class NotFound(CatalogError):
    code = "not_found"

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(
            f"{entity} not found with id: {entity_id}",
            details={"entity": entity, "id": entity_id},
        )


class DuplicateSku(CatalogError):
    code = "duplicate_sku"

    def __init__(self, sku: str):
        self.sku = sku
        super().__init__(f"Product with SKU {sku} already exists", details={"sku": sku})


class DuplicateName(CatalogError):
    code = "duplicate_name"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Category with name '{name}' already exists", details={"name": name})


class ConflictingState(CatalogError):
    """The store's current state forbids the operation (e.g. deleting a referenced category)."""

    code = "conflicting_state"
