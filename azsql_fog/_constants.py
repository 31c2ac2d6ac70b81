"""Shared constants for the azsql_fog package."""

RESOURCE_GROUP_LOCATION = "eastus"
PRIMARY_LOCATION = "southeastasia"
SECONDARY_LOCATION = "eastus2"

RESOURCE_GROUP_PREFIX = "rgSQLServer"
SERVER_PREFIX = "sqlserver-failovertest"
DATABASE_PREFIX = "SQLPrimaryDB"
FAILOVER_GROUP_PREFIX = "my-other-failover-group"

DEFAULT_ADMIN_LOGIN = "sqladmin1234"
DEFAULT_SKU_NAME = "S0"
DEFAULT_SKU_TIER = "Standard"

DEFAULT_GRACE_PERIOD_MINUTES = 120
DEFAULT_UPDATE_TAGS = {"tag1": "value1", "tag2": "update-test"}

# Geo-replication of the database to the secondary is not immediate.
DEFAULT_REPLICATION_WAIT_SECONDS = 180

# Azure SQL server names: lowercase letters, digits and hyphens, max 63 chars.
MAX_NAME_LENGTH = 63
NAME_SUFFIX_LENGTH = 5
MIN_PASSWORD_LENGTH = 8
DEFAULT_PASSWORD_LENGTH = 16
