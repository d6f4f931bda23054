"""
Dataverse Web API client.

The client ties the token manager, codec, request builder, batch support
and transport together. One instance is meant to be created once and
shared: it pools connections and caches the access token, and it is safe
to use from many concurrent tasks.

Usage:
    config = load_config(Path("config.yaml"))
    async with DataverseClient.with_client_secret_auth(config) as client:
        client.register(CONTACT_MAPPING)
        contact = await client.retrieve(
            Reference("contacts", "12345678-1234-1234-1234-123456789012"),
            Contact,
        )
"""

import logging
from typing import Any, Iterable

from dataverse_client.batch import Batch, BatchResult, parse_batch_response, serialize_batch
from dataverse_client.codec import EntityCodec, EntityMapping
from dataverse_client.config import DataverseConfig
from dataverse_client.errors import BatchTimeoutError, RequestTimeoutError, ValidationError
from dataverse_client.logging import LogContext, log_operation
from dataverse_client.oauth2 import (
    BaseOAuth2Provider,
    ClientCredentialsProvider,
    NoAuthProvider,
    OAuth2Config,
    OAuth2TokenManager,
)
from dataverse_client.reference import ColumnSelection, Reference
from dataverse_client.requests import (
    RequestBuilder,
    created_id,
    parse_json_body,
    raise_for_status,
)
from dataverse_client.transport import AiohttpTransport
from dataverse_client.types import HttpRequest, HttpResponse, Transport

logger = logging.getLogger(__name__)

DUMMY_ORGANIZATION_URL = "https://instance.crm.dynamics.com"


class DataverseClient:
    """
    Async client for one Dataverse environment.

    Every operation fetches a valid token first (sharing a single refresh
    across concurrent callers), performs exactly one HTTP exchange and never
    retries. Failures surface as DataverseError subclasses.
    """

    def __init__(
        self,
        config: DataverseConfig,
        transport: Transport | None = None,
        provider: BaseOAuth2Provider | None = None,
        codec: EntityCodec | None = None,
    ):
        """
        Args:
            config: Environment URL, credentials and limits
            transport: HTTP transport; an AiohttpTransport owned by the client when None
            provider: Token provider; client-credentials from config when None
            codec: Entity codec holding the record mappings
        """
        self.config = config
        self._owns_transport = transport is None
        self.transport: Transport = transport or AiohttpTransport(
            timeout_seconds=config.timeout_seconds,
            max_connections=config.max_connections,
        )

        if provider is None:
            provider = ClientCredentialsProvider(
                OAuth2Config(
                    client_id=config.client_id,
                    client_secret=config.client_secret,
                    token_url=config.token_url,
                    scope=config.scope,
                ),
                self.transport,
            )

        self.token_manager = OAuth2TokenManager(
            provider, refresh_buffer_seconds=config.refresh_buffer_seconds
        )
        self.codec = codec or EntityCodec()
        self.builder = RequestBuilder(config.api_base_url)

        logger.info(
            "DataverseClient initialized",
            extra={
                "http_url": config.api_base_url,
                "provider_name": provider.provider_name,
                "timeout_seconds": config.timeout_seconds,
            },
        )

    @classmethod
    def with_client_secret_auth(
        cls,
        config: DataverseConfig,
        transport: Transport | None = None,
        codec: EntityCodec | None = None,
    ) -> "DataverseClient":
        """
        Client authenticating with the client-credentials grant.

        Raises:
            InvalidConfigurationError: Missing URL, tenant, client id or secret
        """
        config.validate()
        return cls(config, transport=transport, codec=codec)

    @classmethod
    def new_dummy(
        cls,
        transport: Transport | None = None,
        codec: EntityCodec | None = None,
    ) -> "DataverseClient":
        """Client whose every service call fails with AuthenticationError."""
        config = DataverseConfig(organization_url=DUMMY_ORGANIZATION_URL)
        return cls(config, transport=transport, provider=NoAuthProvider(), codec=codec)

    async def __aenter__(self) -> "DataverseClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self.token_manager.close()
        if self._owns_transport:
            await self.transport.close()

    def register(self, mapping: EntityMapping) -> None:
        """Register a record mapping with this client's codec."""
        self.codec.register(mapping)

    async def _send(self, request: HttpRequest, timeout: float | None) -> HttpResponse:
        if timeout is None:
            timeout = self.config.timeout_seconds
        return await self.transport.send(request, timeout=timeout)

    # =========================================================================
    # CRUD
    # =========================================================================

    async def retrieve(
        self,
        reference: Reference,
        record_type: type,
        selection: ColumnSelection | Iterable[str] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """
        Fetch one record, reading only the selected columns.

        Raises:
            ValidationError: Empty or unmapped selection (before any network call)
            AuthenticationError: Token could not be obtained
            ODataError: Service answered 4xx/5xx (e.g. 404 for a missing record)
            DecodeError: Body does not match the selection
            NetworkError / RequestTimeoutError: Transport failure
        """
        columns = self.codec.selection_for(record_type, selection)

        with log_operation(
            logger,
            "retrieve",
            entity_set=reference.entity_set,
            record_id=str(reference.id),
        ):
            token = await self.token_manager.get_token()
            response = await self._send(self.builder.retrieve(reference, columns, token), timeout)
            raise_for_status(response)
            return self.codec.decode(parse_json_body(response), record_type, columns)

    async def create(self, record: Any, timeout: float | None = None) -> Reference:
        """
        Create a record and return the reference to it.

        Any 2xx status is success; the new id comes from the OData-EntityId
        header, or from the echoed body when the service returned one.
        """
        mapping = self.codec.mapping_for(type(record))
        document = self.codec.encode(record)

        with log_operation(logger, "create", entity_set=mapping.entity_set) as op:
            token = await self.token_manager.get_token()
            response = await self._send(
                self.builder.create(mapping.entity_set, document, token), timeout
            )
            raise_for_status(response)
            reference = Reference(mapping.entity_set, created_id(response, mapping.primary_key))
            op.add_context(record_id=str(reference.id))
            return reference

    async def update(
        self,
        record: Any,
        selection: ColumnSelection | Iterable[str] | None = None,
        timeout: float | None = None,
    ) -> Reference:
        """
        Update the selected columns of an existing record.

        Fails with ODataError (404) instead of creating a missing record.
        """
        reference = self.codec.reference_of(record)
        document = self.codec.encode(record, selection)

        with log_operation(
            logger, "update", entity_set=reference.entity_set, record_id=str(reference.id)
        ):
            token = await self.token_manager.get_token()
            response = await self._send(self.builder.update(reference, document, token), timeout)
            raise_for_status(response)
            return reference

    async def upsert(
        self,
        record: Any,
        selection: ColumnSelection | Iterable[str] | None = None,
        timeout: float | None = None,
    ) -> Reference:
        """Update the record, creating it under its own id when it does not exist."""
        reference = self.codec.reference_of(record)
        document = self.codec.encode(record, selection)

        with log_operation(
            logger, "upsert", entity_set=reference.entity_set, record_id=str(reference.id)
        ):
            token = await self.token_manager.get_token()
            response = await self._send(self.builder.upsert(reference, document, token), timeout)
            raise_for_status(response)
            return reference

    async def delete(self, reference: Reference, timeout: float | None = None) -> None:
        """Delete the referenced record."""
        with log_operation(
            logger, "delete", entity_set=reference.entity_set, record_id=str(reference.id)
        ):
            token = await self.token_manager.get_token()
            response = await self._send(self.builder.delete(reference, token), timeout)
            raise_for_status(response)

    # =========================================================================
    # Batch
    # =========================================================================

    def batch(self, atomic: bool = False) -> Batch:
        """New empty batch bound to this client's builder and codec."""
        return Batch(self.builder, self.codec, atomic=atomic)

    async def execute(self, batch: Batch, timeout: float | None = None) -> BatchResult:
        """
        Submit a batch in one $batch exchange.

        Returns:
            BatchResult with one outcome per operation, in submission order.
            Failed operations carry their own ODataError or DecodeError.

        Raises:
            ValidationError: Empty batch
            ODataError: The $batch request itself was rejected
            BatchTimeoutError: Submission timed out; every outcome is unknown
            BatchIntegrityError: Response sections do not line up with the operations
            NetworkError: Transport failure
        """
        if len(batch) == 0:
            raise ValidationError("Cannot execute an empty batch")

        with LogContext(batch_id=batch.batch_id), log_operation(
            logger, "execute_batch", batch_size=len(batch)
        ) as op:
            token = await self.token_manager.get_token()
            request = self.builder.batch(
                batch.boundary,
                serialize_batch(batch),
                token,
                continue_on_error=not batch.atomic,
            )

            try:
                response = await self._send(request, timeout)
            except RequestTimeoutError as e:
                raise BatchTimeoutError(
                    f"Batch {batch.batch_id} timed out; the outcome of its "
                    f"{len(batch)} operations is unknown",
                    cause=e,
                    context={"batch_id": batch.batch_id, "batch_size": len(batch)},
                ) from e

            raise_for_status(response)
            result = parse_batch_response(response, batch)

            op.add_context(
                records_succeeded=len(result.succeeded),
                records_failed=len(result.failed),
            )
            if result.failed:
                logger.warning(
                    f"{len(result.failed)} of {len(result)} batch operations failed",
                    extra={
                        "batch_size": len(result),
                        "records_failed": len(result.failed),
                    },
                )
            return result


__all__ = ["DataverseClient"]
