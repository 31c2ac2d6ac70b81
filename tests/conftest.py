"""Shared fixtures for azsql_fog tests."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import pytest


class FakePoller:
    """Stand-in for an ``azure.core.polling.LROPoller``."""

    def __init__(self, value: Any = None) -> None:
        self._value = value
        self.result_calls = 0

    def result(self) -> Any:
        self.result_calls += 1
        return self._value


def _resource_id(rg: str, *parts: str) -> str:
    return (
        "/subscriptions/sub-id/resourceGroups/" + rg
        + "/providers/Microsoft.Sql/" + "/".join(parts)
    )


class FakeSql:
    """Builds a ``MagicMock`` SQL management client that echoes what it is given.

    Created servers, databases and failover groups come back as
    ``SimpleNamespace`` objects carrying the request's name and fields.
    """

    def __init__(self) -> None:
        self.client = MagicMock()
        self.failover_groups: Dict[str, SimpleNamespace] = {}
        c = self.client
        c.servers.begin_create_or_update.side_effect = self._create_server
        c.servers.begin_delete.return_value = FakePoller()
        c.databases.begin_create_or_update.side_effect = self._create_database
        c.databases.get.side_effect = self._get_database
        c.failover_groups.begin_create_or_update.side_effect = self._create_group
        c.failover_groups.get.side_effect = self._get_group
        c.failover_groups.begin_update.side_effect = self._update_group
        c.failover_groups.list_by_server.side_effect = self._list_groups
        c.failover_groups.begin_delete.return_value = FakePoller()

    def _create_server(self, rg, name, params):
        return FakePoller(SimpleNamespace(
            name=name, location=params.location,
            id=_resource_id(rg, "servers", name),
        ))

    def _create_database(self, rg, server, name, params):
        return FakePoller(SimpleNamespace(
            name=name, location=params.location, sku=params.sku,
            id=_resource_id(rg, "servers", server, "databases", name),
        ))

    def _get_database(self, rg, server, name):
        return SimpleNamespace(name=name, id=_resource_id(rg, "servers", server, "databases", name))

    def _create_group(self, rg, server, name, params):
        group = SimpleNamespace(
            name=name,
            read_write_endpoint=params.read_write_endpoint,
            read_only_endpoint=params.read_only_endpoint,
            partner_servers=params.partner_servers,
            databases=[],
            tags={},
        )
        self.failover_groups[name] = group
        return FakePoller(group)

    def _get_group(self, rg, server, name):
        return self.failover_groups[name]

    def _update_group(self, rg, server, name, params):
        group = self.failover_groups[name]
        group.read_write_endpoint = params.read_write_endpoint
        group.read_only_endpoint = params.read_only_endpoint
        if params.databases is not None:
            group.databases = list(params.databases)
        if params.tags is not None:
            group.tags = dict(params.tags)
        return FakePoller(group)

    def _list_groups(self, rg, server):
        return iter(list(self.failover_groups.values()))


@pytest.fixture()
def fake_sql():
    return FakeSql()


@pytest.fixture()
def fake_clients(fake_sql):
    """A ``MagicMock`` standing in for :class:`ManagementClients`."""
    clients = MagicMock()
    clients.sql = fake_sql.client
    clients.resource.resource_groups.create_or_update.side_effect = (
        lambda name, params: SimpleNamespace(name=name, location=params["location"])
    )
    clients.resource.resource_groups.begin_delete.return_value = FakePoller()
    return clients


@pytest.fixture()
def no_sleep(monkeypatch):
    """Record ``time.sleep`` calls made by the sample instead of sleeping."""
    calls: List[Optional[float]] = []
    monkeypatch.setattr("azsql_fog.sample.time.sleep", calls.append)
    return calls
