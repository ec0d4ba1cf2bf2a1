"""
Field mapping from a source entity to its destination representation.

Only writable properties are copied. Fields that name the source account's
storage account or region are translated to the destination's values;
everything else is deep-copied so the source objects are never shared with
(or modified through) the destination models.
"""

import copy
import logging
from typing import Any, Dict, Iterable, Type, TypeVar

from ..config import AccountContext

logger = logging.getLogger(__name__)

M = TypeVar("M")


class AccountTranslator:
    """Rewrites account-scoped values from the source account to the destination."""

    def __init__(self, source: AccountContext, destination: AccountContext) -> None:
        self.source = source
        self.destination = destination

    def storage_account_name(self, value: Any) -> str:
        """Destination storage account for an entity stored in *value* at the source."""
        if value and str(value).lower() != self.source.storage_account_name.lower():
            logger.warning(
                f"Storage account '{value}' is not the configured source storage account; "
                f"mapping it to '{self.destination.storage_account_name}'"
            )
        return self.destination.storage_account_name

    def location(self, value: Any) -> str:
        """Destination region for a tracked resource."""
        return self.destination.location


def copy_fields(source: Any, fields: Iterable[str]) -> Dict[str, Any]:
    """Deep copies of the named attributes of *source* that are set."""
    values: Dict[str, Any] = {}
    for name in fields:
        value = getattr(source, name, None)
        if value is not None:
            values[name] = copy.deepcopy(value)
    return values


def build_model(model_cls: Type[M], source: Any, fields: Iterable[str], **overrides: Any) -> M:
    """
    Build a *model_cls* instance from the writable *fields* of *source*.

    Keyword overrides take precedence over copied values; None overrides are
    dropped so the service default applies.
    """
    values = copy_fields(source, fields)
    for key, value in overrides.items():
        if value is None:
            values.pop(key, None)
        else:
            values[key] = value
    return model_cls(**values)
