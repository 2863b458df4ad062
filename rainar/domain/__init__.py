"""Domain layer: errors, schemas, constants."""

from .errors import (
    CatalogUnavailableError,
    ErrorCodes,
    IntegrityFailureError,
    NotFoundError,
    PipelineError,
    RemoteConflictError,
    RemoteFailureError,
    RemoteUnavailableError,
    UnauthorizedError,
    UnresolvedPlaceholderError,
    ValidationError,
)
from .schemas import (
    ProvisioningRequest,
    ProvisioningResult,
    RemoteRepository,
    RenderedFile,
    RunStatus,
    SealedSecret,
    SecretSpec,
    SecretSubmission,
    Template,
    WorkflowRunStatus,
)

__all__ = [
    # errors
    "ErrorCodes",
    "PipelineError",
    "ValidationError",
    "NotFoundError",
    "UnauthorizedError",
    "RemoteConflictError",
    "RemoteFailureError",
    "RemoteUnavailableError",
    "IntegrityFailureError",
    "UnresolvedPlaceholderError",
    "CatalogUnavailableError",
    # schemas
    "Template",
    "SecretSpec",
    "ProvisioningRequest",
    "RenderedFile",
    "RemoteRepository",
    "SecretSubmission",
    "SealedSecret",
    "ProvisioningResult",
    "RunStatus",
    "WorkflowRunStatus",
]
