"""
Shared infrastructure for the settlement backend.

Nothing in ``core`` knows about orders or payouts:

    core.exceptions    error taxonomy rendered by the API layer
    core.services      BaseService and ServiceResult
    core.models        BaseModel (timestamps)
    core.model_mixins  UUIDPrimaryKeyMixin
    core.views         health probe

Only the non-model pieces are re-exported here; importing models from a
package ``__init__`` would trip AppRegistryNotReady.
"""

from .exceptions import (
    BaseApplicationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from .services import BaseService, ServiceResult

__all__ = [
    "BaseApplicationError",
    "BaseService",
    "ConflictError",
    "ExternalServiceError",
    "NotFoundError",
    "PermissionDeniedError",
    "ServiceResult",
    "ValidationError",
]
