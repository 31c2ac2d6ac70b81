"""Failover-group lifecycle sample on Azure SQL.

``FailoverGroupSample`` is the primary user-facing entry point::

    from azsql_fog import AzureSettings, FailoverGroupSample, ManagementClients

    clients = ManagementClients.from_settings(AzureSettings())
    sample = FailoverGroupSample(clients)
    results = sample.run()

The run creates a resource group, a primary SQL server with one database and
a secondary SQL server, then walks a failover group through its lifecycle:

* create it on the primary, partnered with the secondary
* read it back from the secondary
* update endpoint policies and tags
* update it again to add the database and restore manual failover
* list the failover groups on the secondary
* read the replicated database from the secondary
* delete the failover group and both servers

Each call blocks until the long-running operation completes.  The resource
group is deleted in a ``finally`` block, so a failed run still cleans up
whatever it managed to create.
"""

from __future__ import annotations

import json
import logging
import os
import re
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml
from azure.mgmt.sql.models import (
    Database,
    FailoverGroup,
    FailoverGroupReadOnlyEndpoint,
    FailoverGroupReadWriteEndpoint,
    FailoverGroupUpdate,
    PartnerInfo,
    ReadOnlyEndpointFailoverPolicy,
    ReadWriteEndpointFailoverPolicy,
    Server,
    Sku,
)

from . import naming
from ._constants import (
    DATABASE_PREFIX,
    DEFAULT_ADMIN_LOGIN,
    DEFAULT_GRACE_PERIOD_MINUTES,
    DEFAULT_REPLICATION_WAIT_SECONDS,
    DEFAULT_SKU_NAME,
    DEFAULT_SKU_TIER,
    DEFAULT_UPDATE_TAGS,
    FAILOVER_GROUP_PREFIX,
    PRIMARY_LOCATION,
    RESOURCE_GROUP_LOCATION,
    RESOURCE_GROUP_PREFIX,
    SECONDARY_LOCATION,
    SERVER_PREFIX,
)
from .clients import ManagementClients
from .credentials import AzureSettings, load_dotenv

logger = logging.getLogger(__name__)

_OPTION_KEYS = frozenset({
    "resource_group_location",
    "primary_location",
    "secondary_location",
    "admin_login",
    "admin_password",
    "sku_name",
    "sku_tier",
    "grace_period_minutes",
    "update_tags",
    "replication_wait_seconds",
})
_CONFIG_KEYS = _OPTION_KEYS | {"azure"}
_NUMERIC_OPTIONS = {
    "replication_wait_seconds": (float, "a number"),
    "grace_period_minutes": (int, "an integer"),
}


def expand_env(value: str) -> str:
    """Expand ``${VAR}`` references in *value* with environment variables."""

    def _repl(m):
        name = m.group(1)
        if name not in os.environ:
            raise KeyError(
                f"Environment variable {name!r} is not set "
                f"(referenced in config as ${{{name}}})"
            )
        return os.environ[name]

    return re.sub(r"\$\{(\w+)}", _repl, str(value))


def _expand_config(value: Any) -> Any:
    """Apply :func:`expand_env` to every string inside *value*."""
    if isinstance(value, str):
        return expand_env(value)
    if isinstance(value, dict):
        return {k: _expand_config(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_expand_config(v) for v in value]
    return value


def _load_config_file(path: Union[str, Path]) -> dict:
    """Load a YAML or JSON config file, chosen by extension."""
    p = Path(path)
    text = p.read_text()
    if p.suffix in (".yaml", ".yml"):
        return yaml.safe_load(text) or {}
    return json.loads(text)


def _validate_config(config: object) -> dict:
    if not isinstance(config, dict):
        raise TypeError(f"config must be a dict, got {type(config).__name__}")
    unknown = sorted(set(config) - _CONFIG_KEYS)
    if unknown:
        raise ValueError(
            f"Unknown config key(s): {', '.join(unknown)}. "
            f"Valid keys are {sorted(_CONFIG_KEYS)}"
        )
    azure = config.get("azure", {})
    if not isinstance(azure, dict):
        raise TypeError(f"'azure' section must be a dict, got {type(azure).__name__}")
    tags = config.get("update_tags")
    if tags is not None and not isinstance(tags, dict):
        raise TypeError(f"update_tags must be a dict, got {type(tags).__name__}")
    return config


def _coerce_options(options: dict) -> dict:
    """Convert numeric options given as strings (e.g. from ``${VAR}``)."""
    for key, (kind, label) in _NUMERIC_OPTIONS.items():
        if key not in options:
            continue
        try:
            options[key] = kind(options[key])
        except (TypeError, ValueError):
            raise ValueError(
                f"{key} must be {label}, got {options[key]!r}"
            ) from None
    return options


def _endpoint_policies(failover_group: Any) -> Tuple[Optional[str], Optional[str]]:
    """Return ``(read_only_policy, read_write_policy)`` of *failover_group*."""
    read_only = getattr(failover_group.read_only_endpoint, "failover_policy", None)
    read_write = getattr(failover_group.read_write_endpoint, "failover_policy", None)
    return read_only, read_write


class FailoverGroupSample:
    """Runs the failover-group lifecycle against one subscription.

    Args:
        clients:                  :class:`~azsql_fog.clients.ManagementClients`.
        resource_group_location:  Region of the resource group (``eastus``).
        primary_location:         Region of the primary server and database.
        secondary_location:       Region of the secondary server.
        admin_login:              SQL administrator login for both servers.
        admin_password:           SQL administrator password (default: a
                                  freshly generated one).
        sku_name / sku_tier:      Database SKU (``S0`` / ``Standard``).
        grace_period_minutes:     Data-loss grace period used with the
                                  automatic read-write policy.
        update_tags:              Tags applied by the first update.
        replication_wait_seconds: Pause before reading the database from the
                                  secondary server (``0`` skips it).
    """

    def __init__(
        self,
        clients: ManagementClients,
        *,
        resource_group_location: str = RESOURCE_GROUP_LOCATION,
        primary_location: str = PRIMARY_LOCATION,
        secondary_location: str = SECONDARY_LOCATION,
        admin_login: str = DEFAULT_ADMIN_LOGIN,
        admin_password: Optional[str] = None,
        sku_name: str = DEFAULT_SKU_NAME,
        sku_tier: str = DEFAULT_SKU_TIER,
        grace_period_minutes: int = DEFAULT_GRACE_PERIOD_MINUTES,
        update_tags: Optional[Dict[str, str]] = None,
        replication_wait_seconds: float = DEFAULT_REPLICATION_WAIT_SECONDS,
    ) -> None:
        if replication_wait_seconds < 0:
            raise ValueError(
                f"replication_wait_seconds must be >= 0, got {replication_wait_seconds}"
            )
        self.clients = clients
        self.resource_group_location = resource_group_location
        self.primary_location = primary_location
        self.secondary_location = secondary_location
        self.admin_login = admin_login
        self._admin_password = admin_password or naming.create_password()
        self.sku_name = sku_name
        self.sku_tier = sku_tier
        self.grace_period_minutes = grace_period_minutes
        self.update_tags = dict(DEFAULT_UPDATE_TAGS if update_tags is None else update_tags)
        self.replication_wait_seconds = replication_wait_seconds

        self.resource_group_name: Optional[str] = None
        self.results: List[dict] = []
        self._current_step: Optional[str] = None
        self._current_name: Optional[str] = None

    # -- factory ------------------------------------------------------------

    @classmethod
    def from_config(
        cls,
        config: Union[str, Path, dict],
        *,
        clients: Optional[ManagementClients] = None,
        **overrides: Any,
    ) -> "FailoverGroupSample":
        """Create a configured sample from a config file or dict.

        Accepts either a file path (YAML/JSON) or an already-parsed dict.
        Loads ``.env`` automatically and expands ``${VAR}`` references in
        string values.  Keyword *overrides* (any constructor option) win over
        the config when they are not ``None``.

        .. code-block:: yaml

            azure:                      # optional, falls back to env vars
              client_id: ${CLIENT_ID}
              client_secret: ${CLIENT_SECRET}
              tenant_id: ${TENANT_ID}
              subscription_id: ${SUBSCRIPTION_ID}
            primary_location: southeastasia
            secondary_location: eastus2
            replication_wait_seconds: 180
        """
        unknown = sorted(set(overrides) - _OPTION_KEYS)
        if unknown:
            raise ValueError(
                f"Unknown override(s): {', '.join(unknown)}. "
                f"Valid options are {sorted(_OPTION_KEYS)}"
            )

        load_dotenv()

        if isinstance(config, (str, Path)):
            config = _load_config_file(config)

        config = _expand_config(_validate_config(config))
        options = {k: v for k, v in config.items() if k in _OPTION_KEYS}
        options.update({k: v for k, v in overrides.items() if v is not None})
        options = _coerce_options(options)

        if clients is None:
            settings = AzureSettings(**config.get("azure", {}))
            clients = ManagementClients.from_settings(settings)
        return cls(clients, **options)

    # -- bookkeeping --------------------------------------------------------

    def _begin(self, step: str, name: Optional[str]) -> float:
        """Mark *step* as in progress and return its start time."""
        self._current_step = step
        self._current_name = name
        return time.monotonic()

    @staticmethod
    def _error_result(step: Optional[str], name: Optional[str], exc: Exception) -> dict:
        return {"step": step, "name": name, "status": "error", "error": str(exc)}

    def _record(self, step: str, name: Optional[str], started: float, **extra: Any) -> dict:
        result: dict = {
            "step": step,
            "name": name,
            "status": "ok",
            "duration_seconds": round(time.monotonic() - started, 2),
        }
        result.update(extra)
        self.results.append(result)
        return result

    # -- steps --------------------------------------------------------------

    def create_resource_group(self) -> Any:
        name = naming.create_random_name(RESOURCE_GROUP_PREFIX)
        started = self._begin("create_resource_group", name)
        logger.info("Creating resource group...")
        group = self.clients.resource.resource_groups.create_or_update(
            name, {"location": self.resource_group_location},
        )
        self.resource_group_name = group.name
        logger.info("Created a resource group with name: %s", group.name)
        self._record(
            "create_resource_group", group.name, started,
            location=self.resource_group_location,
        )
        return group

    def create_server(self, location: str, *, role: str) -> Any:
        name = naming.create_random_name(SERVER_PREFIX)
        started = self._begin(f"create_{role}_server", name)
        logger.info("Creating %s SQL Server...", role)
        server = self.clients.sql.servers.begin_create_or_update(
            self.resource_group_name,
            name,
            Server(
                location=location,
                administrator_login=self.admin_login,
                administrator_login_password=self._admin_password,
            ),
        ).result()
        logger.info("Created %s SQL Server with name: %s", role, server.name)
        self._record(f"create_{role}_server", server.name, started, location=location)
        return server

    def create_database(self, server: Any) -> Any:
        name = naming.create_random_name(DATABASE_PREFIX)
        started = self._begin("create_database", name)
        logger.info("Creating a database in SQL Server %s...", server.name)
        database = self.clients.sql.databases.begin_create_or_update(
            self.resource_group_name,
            server.name,
            name,
            Database(
                location=server.location,
                sku=Sku(name=self.sku_name, tier=self.sku_tier),
            ),
        ).result()
        logger.info("Created a database in SQL Server %s with name: %s", server.name, database.name)
        self._record(
            "create_database", database.name, started,
            server=server.name, sku=self.sku_name,
        )
        return database

    def create_failover_group(self, primary: Any, secondary: Any) -> Any:
        name = naming.create_random_name(FAILOVER_GROUP_PREFIX)
        started = self._begin("create_failover_group", name)
        logger.info(
            "Creating a Failover Group from %s to %s", primary.name, secondary.name,
        )
        group = self.clients.sql.failover_groups.begin_create_or_update(
            self.resource_group_name,
            primary.name,
            name,
            FailoverGroup(
                read_write_endpoint=FailoverGroupReadWriteEndpoint(
                    failover_policy=ReadWriteEndpointFailoverPolicy.MANUAL,
                ),
                read_only_endpoint=FailoverGroupReadOnlyEndpoint(
                    failover_policy=ReadOnlyEndpointFailoverPolicy.DISABLED,
                ),
                partner_servers=[PartnerInfo(id=secondary.id)],
            ),
        ).result()
        logger.info("Created a Failover Group with name %s", group.name)
        self._record(
            "create_failover_group", group.name, started,
            server=primary.name, partner=secondary.name,
        )
        return group

    def get_failover_group(self, server: Any, name: str) -> Any:
        started = self._begin("get_failover_group", name)
        logger.info("Getting the Failover Group from SQL Server %s...", server.name)
        group = self.clients.sql.failover_groups.get(
            self.resource_group_name, server.name, name,
        )
        logger.info("Got the Failover Group from SQL Server %s with name: %s", server.name, group.name)
        self._record("get_failover_group", group.name, started, server=server.name)
        return group

    def _update_failover_group(
        self, step: str, server: Any, name: str, parameters: FailoverGroupUpdate,
    ) -> Any:
        started = self._begin(step, name)
        group = self.clients.sql.failover_groups.begin_update(
            self.resource_group_name, server.name, name, parameters,
        ).result()
        read_only, read_write = _endpoint_policies(group)
        logger.info(
            "Updated the Failover Group %s, endpoint policies: read-only=%s read-write=%s",
            group.name, read_only, read_write,
        )
        self._record(
            step, group.name, started,
            read_only_policy=read_only, read_write_policy=read_write,
        )
        return group

    def update_failover_group_policies(self, server: Any, name: str) -> Any:
        """Switch to automatic read-write failover, enable read-only failover and tag."""
        logger.info("Updating the Failover Group Endpoint policies and tags...")
        group = self._update_failover_group(
            "update_failover_group_policies",
            server,
            name,
            FailoverGroupUpdate(
                read_write_endpoint=FailoverGroupReadWriteEndpoint(
                    failover_policy=ReadWriteEndpointFailoverPolicy.AUTOMATIC,
                    failover_with_data_loss_grace_period_minutes=self.grace_period_minutes,
                ),
                read_only_endpoint=FailoverGroupReadOnlyEndpoint(
                    failover_policy=ReadOnlyEndpointFailoverPolicy.ENABLED,
                ),
                tags=dict(self.update_tags),
            ),
        )
        self.results[-1]["tags"] = dict(group.tags or {})
        return group

    def add_database_to_failover_group(self, server: Any, name: str, database: Any) -> Any:
        """Add *database* and go back to manual read-write failover."""
        logger.info(
            "Updating the Failover Group to add database and change "
            "read-write endpoint's failover policy...",
        )
        group = self._update_failover_group(
            "add_database_to_failover_group",
            server,
            name,
            FailoverGroupUpdate(
                read_write_endpoint=FailoverGroupReadWriteEndpoint(
                    failover_policy=ReadWriteEndpointFailoverPolicy.MANUAL,
                ),
                read_only_endpoint=FailoverGroupReadOnlyEndpoint(
                    failover_policy=ReadOnlyEndpointFailoverPolicy.DISABLED,
                ),
                databases=[database.id],
            ),
        )
        self.results[-1]["databases"] = list(group.databases or [])
        return group

    def list_failover_groups(self, server: Any) -> List[str]:
        started = self._begin("list_failover_groups", server.name)
        logger.info("Listing the Failover Groups on SQL Server %s...", server.name)
        names = []
        for group in self.clients.sql.failover_groups.list_by_server(
            self.resource_group_name, server.name,
        ):
            logger.info("The Failover Group with name: %s on SQL Server %s", group.name, server.name)
            names.append(group.name)
        self._record("list_failover_groups", server.name, started, failover_groups=names)
        return names

    def get_replicated_database(self, server: Any, name: str) -> Any:
        """Read database *name* from *server* once geo-replication had time to seed it."""
        started = self._begin("get_replicated_database", name)
        logger.info("Getting the database from SQL Server %s...", server.name)
        if self.replication_wait_seconds:
            logger.info(
                "Waiting %s second(s) for geo-replication", self.replication_wait_seconds,
            )
            time.sleep(self.replication_wait_seconds)
        database = self.clients.sql.databases.get(
            self.resource_group_name, server.name, name,
        )
        logger.info("Got the database from SQL Server %s with name: %s", server.name, database.name)
        self._record("get_replicated_database", database.name, started, server=server.name)
        return database

    def delete_failover_group(self, server: Any, name: str) -> None:
        started = self._begin("delete_failover_group", name)
        logger.info("Deleting the Failover Group %s...", name)
        self.clients.sql.failover_groups.begin_delete(
            self.resource_group_name, server.name, name,
        ).result()
        self._record("delete_failover_group", name, started, server=server.name)

    def delete_server(self, server: Any) -> None:
        started = self._begin("delete_server", server.name)
        logger.info("Deleting SQL Server %s...", server.name)
        self.clients.sql.servers.begin_delete(
            self.resource_group_name, server.name,
        ).result()
        self._record("delete_server", server.name, started)

    def delete_resource_group(self) -> None:
        """Delete the resource group if one was created; never raises."""
        if self.resource_group_name is None:
            return
        started = time.monotonic()
        try:
            logger.info("Deleting Resource Group...")
            self.clients.resource.resource_groups.begin_delete(
                self.resource_group_name,
            ).result()
            logger.info("Deleted Resource Group: %s", self.resource_group_name)
            self._record("delete_resource_group", self.resource_group_name, started)
        except Exception as exc:
            logger.exception(
                "Failed to delete resource group %s", self.resource_group_name,
            )
            self.results.append(
                self._error_result("delete_resource_group", self.resource_group_name, exc)
            )

    # -- run ----------------------------------------------------------------

    def run(self) -> List[dict]:
        """Execute every step in order and return the per-step result dicts.

        A failing step is recorded as an ``error`` result and its exception
        propagates after the resource group is cleaned up.
        """
        self.results = []
        self.resource_group_name = None
        self._current_step = self._current_name = None
        try:
            self._run_steps()
        except Exception as exc:
            logger.error("Step %s failed: %s", self._current_step, exc)
            self.results.append(
                self._error_result(self._current_step, self._current_name, exc)
            )
            raise
        finally:
            self.delete_resource_group()
        return self.results

    def _run_steps(self) -> None:
        self.create_resource_group()

        logger.info("Creating a primary SQL Server with a sample database")
        primary = self.create_server(self.primary_location, role="primary")
        database = self.create_database(primary)

        logger.info("Creating a secondary SQL Server")
        secondary = self.create_server(self.secondary_location, role="secondary")

        group = self.create_failover_group(primary, secondary)
        self.get_failover_group(secondary, group.name)
        group = self.update_failover_group_policies(primary, group.name)
        group = self.add_database_to_failover_group(primary, group.name, database)
        self.list_failover_groups(secondary)
        self.get_replicated_database(secondary, database.name)

        self.delete_failover_group(primary, group.name)
        logger.info("Deleting the Sql Servers...")
        self.delete_server(primary)
        self.delete_server(secondary)

    def __repr__(self) -> str:
        return (
            f"FailoverGroupSample(primary_location={self.primary_location!r}, "
            f"secondary_location={self.secondary_location!r}, "
            f"admin_login={self.admin_login!r})"
        )
