"""
Async client for the Microsoft Dataverse OData Web API.

Covers client-credentials authentication with a shared token cache,
typed record mapping, single-record CRUD and $batch submission with
per-operation results.
"""

from dataverse_client.batch import Batch, BatchResult, OperationKind, OperationOutcome
from dataverse_client.client import DataverseClient
from dataverse_client.codec import EntityCodec, EntityMapping, FieldMapping
from dataverse_client.config import DataverseConfig, load_config
from dataverse_client.errors import (
    AuthenticationError,
    BatchIntegrityError,
    BatchTimeoutError,
    DataverseError,
    DecodeError,
    InvalidConfigurationError,
    NetworkError,
    ODataError,
    RequestTimeoutError,
    ValidationError,
)
from dataverse_client.reference import ColumnSelection, Reference
from dataverse_client.transport import AiohttpTransport
from dataverse_client.types import ErrorCategory, HttpRequest, HttpResponse

__all__ = [
    # Client
    "DataverseClient",
    "DataverseConfig",
    "load_config",
    "AiohttpTransport",
    # Records
    "Reference",
    "ColumnSelection",
    "EntityCodec",
    "EntityMapping",
    "FieldMapping",
    # Batch
    "Batch",
    "BatchResult",
    "OperationKind",
    "OperationOutcome",
    # HTTP
    "HttpRequest",
    "HttpResponse",
    # Errors
    "ErrorCategory",
    "DataverseError",
    "AuthenticationError",
    "NetworkError",
    "RequestTimeoutError",
    "BatchTimeoutError",
    "ValidationError",
    "DecodeError",
    "BatchIntegrityError",
    "InvalidConfigurationError",
    "ODataError",
]
