"""Azure service-principal settings and credential wiring.

Provides :class:`AzureSettings`, which resolves the service principal and
subscription used by the sample, and builds the ``azure-identity`` credential.

Configuration is resolved in order: explicit arguments > environment
variables.  A ``.env`` file is loaded automatically (if present) via
:func:`load_dotenv`.

Env vars:
    CLIENT_ID        -- Service principal application (client) id
    CLIENT_SECRET    -- Service principal secret
    TENANT_ID        -- Azure AD tenant id
    SUBSCRIPTION_ID  -- Subscription the resources are created in
"""

from __future__ import annotations

import logging
import os
from typing import Dict, List, Optional

from azure.identity import ClientSecretCredential

logger = logging.getLogger(__name__)

_ENV_VARS = {
    "client_id": "CLIENT_ID",
    "client_secret": "CLIENT_SECRET",
    "tenant_id": "TENANT_ID",
    "subscription_id": "SUBSCRIPTION_ID",
}


_dotenv_loaded: set = set()


def load_dotenv(path: Optional[str] = None) -> None:
    """Read a simple key=value .env file into ``os.environ``.

    Existing variables are never overwritten.  Subsequent calls with the same
    resolved *path* are no-ops.
    """
    if path is None:
        path = os.path.join(os.path.dirname(os.path.dirname(__file__)), ".env")
    resolved = os.path.abspath(path)
    if resolved in _dotenv_loaded:
        return
    if not os.path.isfile(resolved):
        return
    with open(resolved) as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith("#") and "=" in line:
                k, v = line.split("=", 1)
                os.environ.setdefault(k.strip(), v.strip().strip("'\""))
    _dotenv_loaded.add(resolved)
    logger.debug("Loaded environment from %s", resolved)


class AzureSettings:
    """Service principal and subscription used to call the management API.

    Usage::

        settings = AzureSettings()          # everything from env / .env
        credential = settings.credential()  # raises if anything is missing
    """

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        tenant_id: Optional[str] = None,
        subscription_id: Optional[str] = None,
        *,
        dotenv_path: Optional[str] = None,
    ) -> None:
        load_dotenv(dotenv_path)

        explicit = {
            "client_id": client_id,
            "client_secret": client_secret,
            "tenant_id": tenant_id,
            "subscription_id": subscription_id,
        }
        resolved = {
            key: value or os.environ.get(_ENV_VARS[key])
            for key, value in explicit.items()
        }
        self.client_id = resolved["client_id"]
        self.tenant_id = resolved["tenant_id"]
        self.subscription_id = resolved["subscription_id"]
        self._client_secret = resolved["client_secret"]

    def as_dict(self) -> Dict[str, Optional[str]]:
        return {
            "client_id": self.client_id,
            "client_secret": self._client_secret,
            "tenant_id": self.tenant_id,
            "subscription_id": self.subscription_id,
        }

    def missing(self) -> List[str]:
        """Return the env var names of every setting that is not resolved."""
        return [_ENV_VARS[k] for k, v in self.as_dict().items() if not v]

    def validate(self) -> None:
        missing = self.missing()
        if missing:
            raise ValueError(
                f"Missing Azure settings: {', '.join(missing)}. Set them in your "
                "environment or .env file, or pass them to the constructor."
            )

    def credential(self) -> ClientSecretCredential:
        """Build a ``ClientSecretCredential`` (raises if any setting is missing)."""
        self.validate()
        logger.debug(
            "Authenticating as client %s in tenant %s", self.client_id, self.tenant_id,
        )
        return ClientSecretCredential(
            tenant_id=self.tenant_id,
            client_id=self.client_id,
            client_secret=self._client_secret,
        )

    def __repr__(self) -> str:
        return (
            f"AzureSettings(client_id={self.client_id!r}, "
            f"tenant_id={self.tenant_id!r}, subscription_id={self.subscription_id!r})"
        )
