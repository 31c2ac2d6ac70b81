"""azsql_fog -- Azure SQL failover-group lifecycle sample."""

from .clients import ManagementClients
from .credentials import AzureSettings, load_dotenv
from .naming import create_password, create_random_name
from .sample import FailoverGroupSample

__all__ = [
    "AzureSettings",
    "FailoverGroupSample",
    "ManagementClients",
    "create_password",
    "create_random_name",
    "load_dotenv",
]
