"""
Per-kind reconcilers.

Each reconciler copies one category of Media Services resources from the
source account to the destination account.
"""

from .account_filters import AccountFilterReconciler
from .assets import AssetReconciler
from .base import CollectionReconciler, Reconciler, ReconcilerBindings
from .content_key_policies import ContentKeyPolicyReconciler
from .live_events import LiveEventReconciler
from .mapping import AccountTranslator, build_model, copy_fields
from .streaming_endpoints import StreamingEndpointReconciler
from .streaming_locators import StreamingLocatorReconciler
from .transforms import TransformReconciler

__all__ = [
    "AccountFilterReconciler",
    "AccountTranslator",
    "AssetReconciler",
    "CollectionReconciler",
    "ContentKeyPolicyReconciler",
    "LiveEventReconciler",
    "Reconciler",
    "ReconcilerBindings",
    "StreamingEndpointReconciler",
    "StreamingLocatorReconciler",
    "TransformReconciler",
    "build_model",
    "copy_fields",
]
