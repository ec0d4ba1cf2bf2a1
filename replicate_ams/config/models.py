"""
Configuration models for a replication run.

Provides type-safe, immutable settings using pydantic: the two account
contexts (source and destination) and the miscellaneous settings shared by
every reconciler.
"""

from typing import Any, Dict, Tuple

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    field_validator,
    model_validator,
)

from ..models import FailurePolicy, ResourceCategory

MEDIA_SERVICES_PROVIDER = "Microsoft.Media/mediaservices"


class AadSettings(BaseModel):
    """Identity provider settings used to acquire management tokens."""

    aad_endpoint: str = Field(
        default="https://login.microsoftonline.com",
        description="Authority host used for the token exchange",
    )
    token_audience: str = Field(
        default="https://management.core.windows.net/",
        description="Resource the management token is requested for",
    )
    validate_authority: bool = Field(
        default=True,
        description="Validate the authority host before requesting tokens",
    )

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator("aad_endpoint", "token_audience")
    @classmethod
    def validate_https(cls, v: str) -> str:
        if not v.startswith("https://"):
            raise ValueError("AAD endpoints must use HTTPS")
        return v

    @property
    def credential_scope(self) -> str:
        """Scope passed to ``get_token`` for the management API."""
        return self.token_audience.rstrip("/") + "/.default"

    def __str__(self) -> str:
        return (
            f"AADEndpoint: {self.aad_endpoint}, TokenAudience: {self.token_audience}, "
            f"ValidateAuthority: {self.validate_authority}"
        )


class AccountContext(BaseModel):
    """One side (source or destination) of a replication run."""

    aad_tenant_id: str = Field(min_length=1)
    aad_client_id: str = Field(min_length=1)
    aad_secret: SecretStr
    subscription_id: str = Field(min_length=1)
    resource_group: str = Field(min_length=1)
    account_name: str = Field(min_length=1)
    storage_account_name: str = Field(min_length=1)
    location: str = Field(min_length=1)
    arm_endpoint: str = Field(default="https://management.azure.com/")
    aad_settings: AadSettings = Field(default_factory=AadSettings)

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator("aad_secret")
    @classmethod
    def validate_secret(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value():
            raise ValueError("AAD secret is required")
        return v

    @field_validator("arm_endpoint")
    @classmethod
    def validate_arm_endpoint(cls, v: str) -> str:
        if not v.startswith("https://"):
            raise ValueError("ARM endpoint must use HTTPS")
        return v

    @property
    def account_id(self) -> str:
        """ARM resource id of the Media Services account."""
        return (
            f"/subscriptions/{self.subscription_id}/resourceGroups/{self.resource_group}"
            f"/providers/{MEDIA_SERVICES_PROVIDER}/{self.account_name}"
        )

    def is_same_account(self, other: "AccountContext") -> bool:
        return (
            self.subscription_id.lower() == other.subscription_id.lower()
            and self.resource_group.lower() == other.resource_group.lower()
            and self.account_name.lower() == other.account_name.lower()
        )

    def describe(self) -> Dict[str, Any]:
        """Safe representation for logging (no secret)."""
        return {
            "subscription_id": self.subscription_id,
            "resource_group": self.resource_group,
            "account_name": self.account_name,
            "storage_account_name": self.storage_account_name,
            "location": self.location,
            "arm_endpoint": self.arm_endpoint,
            "aad_tenant_id": self.aad_tenant_id,
            "aad_client_id": self.aad_client_id,
        }


class MiscellaneousSettings(BaseModel):
    """Process-wide flags affecting how copying happens."""

    copy_using_local_network: bool = Field(
        default=False,
        description="Relay asset content through this machine instead of a server-side copy",
    )
    copy_asset_content: bool = Field(
        default=True,
        description="Copy asset blobs that are missing at the destination",
    )
    failure_policy: FailurePolicy = Field(
        default=FailurePolicy.FAIL_FAST,
        description="Stop the run at the first failed category, or continue",
    )
    dry_run: bool = Field(
        default=False,
        description="List and diff only, never create anything",
    )
    skip_categories: Tuple[ResourceCategory, ...] = Field(
        default=(),
        description="Categories that are not replicated",
    )
    max_parallel_operations: int = Field(
        default=1,
        ge=1,
        le=32,
        description="Entities of one category processed concurrently",
    )
    max_retries: int = Field(default=3, ge=0, description="Retries for transient faults")
    retry_delay: float = Field(
        default=1.0, ge=0.0, description="Initial backoff delay in seconds"
    )
    sas_expiry_hours: int = Field(
        default=4, ge=1, le=24, description="Validity of asset container SAS URLs"
    )

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator("skip_categories", mode="before")
    @classmethod
    def split_categories(cls, v: Any) -> Any:
        if isinstance(v, str):
            return tuple(part.strip() for part in v.split(",") if part.strip())
        return v


class AppSettings(BaseModel):
    """Root settings: source account, destination account and miscellaneous."""

    source_config: AccountContext
    destination_config: AccountContext
    miscellaneous: MiscellaneousSettings = Field(default_factory=MiscellaneousSettings)

    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="after")
    def validate_distinct_accounts(self) -> "AppSettings":
        if self.source_config.is_same_account(self.destination_config):
            raise ValueError(
                "Source and destination must be different Media Services accounts"
            )
        return self

    @property
    def source(self) -> AccountContext:
        return self.source_config

    @property
    def destination(self) -> AccountContext:
        return self.destination_config

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to a dictionary without secrets."""
        return {
            "source": self.source.describe(),
            "destination": self.destination.describe(),
            "miscellaneous": self.miscellaneous.model_dump(mode="json"),
        }
