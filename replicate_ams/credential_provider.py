"""
Credential Provider Module

Builds the authenticated client pair used by a run: one Media Services
management client bound to the source account and one bound to the
destination account, each with its own service principal.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from azure.core.exceptions import ClientAuthenticationError
from azure.identity import ClientSecretCredential, CredentialUnavailableError
from azure.mgmt.media import AzureMediaServices

from .config import AccountContext, AppSettings
from .exceptions import AzureAuthenticationError
from .timeout_config import Timeouts

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClientPair:
    """Management clients for both sides of a run."""

    source: Any
    destination: Any


def _mask(value: str) -> str:
    return value[:8] + "..." if len(value) > 8 else value


class MediaServicesClientProvider:
    """
    Creates credentials and management clients per account context.

    Attributes:
        settings: AppSettings holding the two account contexts
        _credential_cache: Cache of credentials per (tenant, client) pair
    """

    def __init__(
        self,
        settings: AppSettings,
        credential_factory: Optional[Callable[..., Any]] = None,
        client_factory: Optional[Callable[..., Any]] = None,
    ) -> None:
        """
        Initialize the provider.

        Args:
            settings: Validated application settings
            credential_factory: Optional ClientSecretCredential replacement (for testing)
            client_factory: Optional AzureMediaServices replacement (for testing)
        """
        self.settings = settings
        self.credential_factory = credential_factory or ClientSecretCredential
        self.client_factory = client_factory or AzureMediaServices
        self._credential_cache: Dict[Tuple[str, str], Any] = {}

    def get_credential(self, context: AccountContext) -> Any:
        """
        Get cached credential or create a new one for *context*.

        Args:
            context: Account whose service principal should be used

        Returns:
            Azure token credential
        """
        key = (context.aad_tenant_id, context.aad_client_id)
        if key not in self._credential_cache:
            logger.debug(
                f"Creating credential for tenant {_mask(context.aad_tenant_id)} "
                f"(client {_mask(context.aad_client_id)})"
            )
            self._credential_cache[key] = self.credential_factory(
                tenant_id=context.aad_tenant_id,
                client_id=context.aad_client_id,
                client_secret=context.aad_secret.get_secret_value(),
                authority=context.aad_settings.aad_endpoint,
                disable_instance_discovery=not context.aad_settings.validate_authority,
            )
        return self._credential_cache[key]

    def create_client(self, context: AccountContext, role: str) -> Any:
        """
        Authenticate and build a management client for one account.

        A token is requested eagerly so that a bad secret fails the run before
        any reconciler starts.

        Raises:
            AzureAuthenticationError: If the token exchange fails
        """
        credential = self.get_credential(context)
        scope = context.aad_settings.credential_scope

        try:
            credential.get_token(scope)
        except (ClientAuthenticationError, CredentialUnavailableError) as exc:
            logger.error(
                f"Token exchange failed for {role} account {context.account_name}: {exc}"
            )
            raise AzureAuthenticationError(
                f"Authentication failed for {role} account '{context.account_name}': {exc}",
                tenant_id=context.aad_tenant_id,
                account_name=context.account_name,
                cause=exc,
            ) from exc

        logger.info(
            f"Authenticated {role} account {context.account_name} "
            f"(tenant {_mask(context.aad_tenant_id)})"
        )
        return self.client_factory(
            credential,
            context.subscription_id,
            base_url=context.arm_endpoint,
            credential_scopes=[scope],
            connection_timeout=Timeouts.HTTP_CONNECT,
            read_timeout=Timeouts.HTTP_READ,
        )

    def create_client_pair(self) -> ClientPair:
        """Build the source and destination clients, source first."""
        source = self.create_client(self.settings.source, "source")
        destination = self.create_client(self.settings.destination, "destination")
        return ClientPair(source=source, destination=destination)

    def clear_cache(self) -> None:
        """Clear credential cache. Useful for testing or credential refresh."""
        logger.debug("Clearing credential cache")
        self._credential_cache.clear()
