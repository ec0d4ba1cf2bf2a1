"""
Custom Exception Hierarchy for the Media Services replicator

This module standardizes error handling across the tool: configuration and
authentication faults abort a run before any reconciler starts, API faults are
raised per entity and aggregated per category, and the orchestrator turns a
category failure into a step outcome.
"""

from typing import Any, Dict, List, Optional

from azure.core.exceptions import ClientAuthenticationError, HttpResponseError


class ReplicatorError(Exception):
    """
    Base exception class for all replicator related errors.

    Provides structured error information including context, error codes,
    and optional recovery suggestions.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recovery_suggestion: Optional[str] = None,
    ) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error message
            error_code: Optional error code for programmatic handling
            context: Optional dictionary with error context
            cause: Optional underlying exception that caused this error
            recovery_suggestion: Optional suggestion for error recovery
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        self.cause = cause
        self.recovery_suggestion = recovery_suggestion

    def __str__(self) -> str:
        """Return a formatted error message with context."""
        result = self.message
        if self.error_code:
            result = f"[{self.error_code}] {result}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            result += f" (context: {context_str})"
        if self.cause:
            result += f" (caused by: {self.cause})"
        if self.recovery_suggestion:
            result += f" (suggestion: {self.recovery_suggestion})"
        return result

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": self.context,
            "cause": str(self.cause) if self.cause else None,
            "recovery_suggestion": self.recovery_suggestion,
        }


# Azure-related exceptions
class AzureServiceError(ReplicatorError):
    """Base class for Azure-related errors."""

    pass


class AzureAuthenticationError(AzureServiceError):
    """Raised when the token exchange for an account fails."""

    def __init__(
        self,
        message: str,
        tenant_id: Optional[str] = None,
        account_name: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if tenant_id:
            context["tenant_id"] = tenant_id
        if account_name:
            context["account_name"] = account_name
        kwargs["context"] = context
        kwargs.setdefault("error_code", "AZURE_AUTH_FAILED")
        kwargs.setdefault(
            "recovery_suggestion",
            "Check the AadTenantId, AadClientId and AadSecret of the account configuration",
        )
        super().__init__(message, **kwargs)


class MediaServicesApiError(AzureServiceError):
    """Raised when the Media Services management API rejects a call.

    ``api_error_code`` and ``api_error_message`` carry the machine readable
    error returned by ARM (for example ``BadRequest``).
    """

    def __init__(
        self,
        message: str,
        api_error_code: Optional[str] = None,
        api_error_message: Optional[str] = None,
        status_code: Optional[int] = None,
        operation: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if operation:
            context["operation"] = operation
        if status_code:
            context["status_code"] = status_code
        kwargs["context"] = context
        kwargs.setdefault("error_code", "MEDIA_SERVICES_API_ERROR")
        super().__init__(message, **kwargs)
        self.api_error_code = api_error_code
        self.api_error_message = api_error_message
        self.status_code = status_code
        self.operation = operation


class AssetContentCopyError(AzureServiceError):
    """Raised when copying the blobs of an asset between storage accounts fails."""

    def __init__(
        self,
        message: str,
        asset_name: Optional[str] = None,
        blob_name: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if asset_name:
            context["asset_name"] = asset_name
        if blob_name:
            context["blob_name"] = blob_name
        kwargs["context"] = context
        kwargs.setdefault("error_code", "ASSET_CONTENT_COPY_FAILED")
        super().__init__(message, **kwargs)


# Configuration-related exceptions
class ConfigurationError(ReplicatorError):
    """Base class for configuration-related errors."""

    pass


class InvalidConfigurationError(ConfigurationError):
    """Raised when configuration validation fails."""

    def __init__(
        self, message: str, config_section: Optional[str] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context", {})
        if config_section:
            context["config_section"] = config_section
        kwargs["context"] = context
        kwargs.setdefault("error_code", "INVALID_CONFIG")
        kwargs.setdefault(
            "recovery_suggestion", "Check appsettings.json and environment variables"
        )
        super().__init__(message, **kwargs)


class MissingConfigurationError(ConfigurationError):
    """Raised when required configuration is missing."""

    def __init__(
        self, message: str, missing_keys: Optional[List[str]] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context", {})
        if missing_keys:
            context["missing_keys"] = missing_keys
        kwargs["context"] = context
        kwargs.setdefault("error_code", "MISSING_CONFIG")
        kwargs.setdefault(
            "recovery_suggestion",
            f"Set required configuration: {', '.join(missing_keys)}"
            if missing_keys
            else "Set required configuration",
        )
        super().__init__(message, **kwargs)


# Replication-related exceptions
class ReplicationError(ReplicatorError):
    """Base class for errors raised while replicating a category."""

    pass


class ReconcilerInitializationError(ReplicationError):
    """Raised when a reconciler is used without its required collection handles."""

    def __init__(
        self,
        message: str,
        category: Optional[str] = None,
        missing_handles: Optional[List[str]] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if category:
            context["category"] = category
        if missing_handles:
            context["missing_handles"] = missing_handles
        kwargs["context"] = context
        kwargs.setdefault("error_code", "RECONCILER_NOT_INITIALIZED")
        super().__init__(message, **kwargs)


class CategoryReplicationError(ReplicationError):
    """Raised when one or more entities of a category could not be replicated."""

    def __init__(
        self,
        message: str,
        category: Optional[str] = None,
        failed_entities: Optional[List[str]] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if category:
            context["category"] = category
        if failed_entities:
            context["failed_entities"] = failed_entities
        kwargs["context"] = context
        kwargs.setdefault("error_code", "CATEGORY_REPLICATION_FAILED")
        super().__init__(message, **kwargs)
        self.category = category
        self.failed_entities = failed_entities or []


class ReplicationAbortedError(ReplicationError):
    """Raised by the orchestrator when a failed step stops the run (fail-fast)."""

    def __init__(self, message: str, report: Any = None, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "REPLICATION_ABORTED")
        super().__init__(message, **kwargs)
        self.report = report


def describe_api_error(exc: BaseException) -> Optional[tuple[str, str]]:
    """
    Extract the ARM error code and message carried by an exception chain.

    Returns:
        Tuple of (code, message) or None when no API error is present
    """
    current: Optional[BaseException] = exc
    seen = set()
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, MediaServicesApiError) and current.api_error_code:
            return current.api_error_code, current.api_error_message or ""
        if isinstance(current, HttpResponseError):
            error = getattr(current, "error", None)
            if error is not None and getattr(error, "code", None):
                return str(error.code), str(getattr(error, "message", "") or "")
        cause = getattr(current, "cause", None)
        current = cause if isinstance(cause, BaseException) else current.__cause__
    return None


# Utility functions for exception handling
def wrap_azure_exception(
    exc: Exception,
    operation: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None,
) -> AzureServiceError:
    """
    Wrap an Azure SDK exception in our custom exception hierarchy.

    Args:
        exc: The original exception
        operation: Description of the call that failed
        context: Optional context information

    Returns:
        AzureServiceError: Wrapped exception with enhanced context
    """
    if isinstance(exc, AzureServiceError):
        return exc

    error_message = getattr(exc, "message", None) or str(exc)
    prefix = f"{operation} failed" if operation else "Azure operation failed"

    if isinstance(exc, ClientAuthenticationError):
        return AzureAuthenticationError(
            f"{prefix}: {error_message}", context=context, cause=exc
        )
    if isinstance(exc, HttpResponseError):
        details = describe_api_error(exc)
        code, api_message = details if details else (None, None)
        return MediaServicesApiError(
            f"{prefix}: {api_message or error_message}",
            api_error_code=code,
            api_error_message=api_message,
            status_code=exc.status_code,
            operation=operation,
            context=context,
            cause=exc,
        )
    return AzureServiceError(f"{prefix}: {error_message}", context=context, cause=exc)
