"""
Service layer for Client operations.

Creates the customers that quotes and invoices are addressed to.  Returns
ClientInfo DTOs, never ORM rows.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select

from billing_kernel.domain.dtos import ClientInfo
from billing_kernel.exceptions import (
    ClientNotFoundError,
    ConflictingUniqueFieldError,
    ValidationError,
)
from billing_kernel.logging_config import get_logger
from billing_kernel.models.client import Client
from billing_kernel.services.base import BaseService

logger = get_logger("services.client")

_OPTIONAL_FIELDS = (
    "email",
    "phone",
    "vat_number",
    "siret",
    "billing_street",
    "billing_zip",
    "billing_city",
)


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


class ClientService(BaseService[Client]):
    """Service for managing clients."""

    def _get_by_id(self, client_id: UUID) -> Client:
        """Get client by ID, raising if not found."""
        client = self.session.get(Client, client_id)
        if client is None:
            raise ClientNotFoundError(str(client_id))
        return client

    def get_client(self, client_id: UUID) -> ClientInfo:
        return ClientInfo.from_model(self._get_by_id(client_id))

    def require_client(self, client_id: UUID) -> None:
        """Raise ClientNotFoundError unless the client exists."""
        self._get_by_id(client_id)

    def create_client(self, display_name: str, **fields: str | None) -> ClientInfo:
        """
        Create a client.

        Args:
            display_name: Required, trimmed.
            **fields: Optional email, phone, vat_number, siret,
                billing_street, billing_zip, billing_city.  Blank values are
                stored as NULL.

        Raises:
            ValidationError: If display_name is blank or an unknown field is
                passed.
            ConflictingUniqueFieldError: If the email is already used.
        """
        unknown = set(fields) - set(_OPTIONAL_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown client fields: {', '.join(sorted(unknown))}")

        name = _clean(display_name) if isinstance(display_name, str) else None
        if name is None:
            raise ValidationError("Client display_name is required")

        values = {key: _clean(fields.get(key)) for key in _OPTIONAL_FIELDS}

        email = values["email"]
        if email is not None:
            existing = self.session.execute(
                select(Client.id).where(Client.email == email)
            ).scalar_one_or_none()
            if existing is not None:
                raise ConflictingUniqueFieldError("client", "email", email)

        client = Client(display_name=name, **values)
        client.created_at = self.clock.now()
        client.updated_at = client.created_at
        self.session.add(client)
        self.session.flush()

        logger.info(
            "client_created",
            extra={"client_id": str(client.id), "display_name": name},
        )
        return ClientInfo.from_model(client)
