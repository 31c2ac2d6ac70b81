"""Lazily constructed Azure management clients."""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Any, Optional, Type

from azure.mgmt.resource.resources import ResourceManagementClient
from azure.mgmt.sql import SqlManagementClient

from .credentials import AzureSettings

logger = logging.getLogger(__name__)


class ManagementClients:
    """Holds the resource and SQL management clients for one subscription.

    Clients are created on first access and reused afterwards.
    """

    def __init__(self, credential: Any, subscription_id: str) -> None:
        if not subscription_id:
            raise ValueError("subscription_id must not be empty")
        self.credential = credential
        self.subscription_id = subscription_id
        self._resource: Optional[ResourceManagementClient] = None
        self._sql: Optional[SqlManagementClient] = None

    @classmethod
    def from_settings(cls, settings: AzureSettings) -> "ManagementClients":
        return cls(settings.credential(), settings.subscription_id)

    @property
    def resource(self) -> ResourceManagementClient:
        if self._resource is None:
            logger.debug("Creating ResourceManagementClient for %s", self.subscription_id)
            self._resource = ResourceManagementClient(self.credential, self.subscription_id)
        return self._resource

    @property
    def sql(self) -> SqlManagementClient:
        if self._sql is None:
            logger.debug("Creating SqlManagementClient for %s", self.subscription_id)
            self._sql = SqlManagementClient(self.credential, self.subscription_id)
        return self._sql

    def close(self) -> None:
        """Close any client that has been created."""
        for client in (self._resource, self._sql):
            if client is not None:
                client.close()
        self._resource = None
        self._sql = None

    def __enter__(self) -> "ManagementClients":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"ManagementClients(subscription_id={self.subscription_id!r})"
