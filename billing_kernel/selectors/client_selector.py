"""
Module: billing_kernel.selectors.client_selector
Responsibility: Read-only access to clients.
Architecture position: Kernel > Selectors.
"""

from sqlalchemy import select

from billing_kernel.domain.dtos import ClientInfo
from billing_kernel.models.client import Client
from billing_kernel.selectors.base import BaseSelector


class ClientSelector(BaseSelector[Client]):
    """Selector for client queries."""

    def list_clients(self, limit: int | None = None) -> list[ClientInfo]:
        """Clients, newest first."""
        query = select(Client).order_by(Client.created_at.desc(), Client.display_name)
        if limit is not None:
            query = query.limit(limit)
        return [ClientInfo.from_model(client) for client in self.session.scalars(query)]

    def find_by_email(self, email: str) -> ClientInfo | None:
        client = self.session.execute(
            select(Client).where(Client.email == email.strip())
        ).scalar_one_or_none()
        return ClientInfo.from_model(client) if client is not None else None
