"""
Shared fixtures: account contexts, settings and in-memory Media Services
operation groups.

The fake operation groups mimic the call signatures of the
``azure.mgmt.media`` operation groups closely enough for the reconcilers
(list / create_or_update / create / begin_create and the secret readers) and
hold real ``azure.mgmt.media.models`` instances.
"""

import copy
from collections import OrderedDict
from types import SimpleNamespace
from typing import Any, Dict, Iterable, List, Optional

import pytest
from azure.core.exceptions import HttpResponseError
from azure.mgmt.media.models import (
    AssetContainerSas,
    ContentKeyPolicyProperties,
    ListContentKeysResponse,
)

from replicate_ams.config import AccountContext, AppSettings, MiscellaneousSettings


def named(model: Any, name: str) -> Any:
    """Set the server-populated name of a model instance."""
    model.name = name
    return model


def api_error(code: str = "BadRequest", message: str = "Bad request", status_code: int = 400):
    """HttpResponseError carrying an ARM error body."""
    exc = HttpResponseError(message=f"({code}) {message}")
    exc.status_code = status_code
    exc.error = SimpleNamespace(code=code, message=message)
    return exc


class FakePoller:
    def __init__(self, result: Any, done: bool = True) -> None:
        self._result = result
        self._done = done
        self.timeout: Optional[float] = None

    def result(self, timeout: Optional[float] = None) -> Any:
        self.timeout = timeout
        return self._result

    def done(self) -> bool:
        return self._done


class FakeOperationGroup:
    """
    In-memory operation group.

    Entities are keyed by name; child groups (asset filters, live outputs) key
    them by (parent, name). ``failures`` maps a name to the exception raised
    when that name is created.
    """

    def __init__(self, items: Iterable[Any] = (), children: Optional[Dict[str, Iterable[Any]]] = None):
        self.items: "OrderedDict[str, Any]" = OrderedDict((item.name, item) for item in items)
        self.children: Dict[str, "OrderedDict[str, Any]"] = {
            parent: OrderedDict((child.name, child) for child in entries)
            for parent, entries in (children or {}).items()
        }
        self.created: List[str] = []
        self.create_kwargs: List[Dict[str, Any]] = []
        self.failures: Dict[str, Exception] = {}
        self.list_calls = 0
        self.secrets: Dict[str, Any] = {}
        self.content_keys: Dict[str, List[Any]] = {}
        self.sas_urls: Dict[str, str] = {}
        self.sas_requests: List[Any] = []
        self.poller_done = True

    # Listing

    def list(self, resource_group: str, account_name: str, *parent: str) -> List[Any]:
        self.list_calls += 1
        if parent:
            return list(self.children.get(parent[0], {}).values())
        return list(self.items.values())

    # Creation

    def _store(self, name: str, parameters: Any, parent: Optional[str] = None) -> Any:
        qualified = f"{parent}/{name}" if parent else name
        if qualified in self.failures:
            raise self.failures[qualified]
        stored = named(copy.copy(parameters), name)
        if parent:
            self.children.setdefault(parent, OrderedDict())[name] = stored
        else:
            self.items[name] = stored
        self.created.append(qualified)
        return stored

    def create_or_update(self, resource_group: str, account_name: str, *args: Any) -> Any:
        if len(args) == 3:
            parent, name, parameters = args
            return self._store(name, parameters, parent)
        name, parameters = args
        return self._store(name, parameters)

    def create(self, resource_group: str, account_name: str, name: str, parameters: Any) -> Any:
        return self._store(name, parameters)

    def begin_create(self, resource_group: str, account_name: str, *args: Any, **kwargs: Any) -> FakePoller:
        self.create_kwargs.append(kwargs)
        if len(args) == 3:
            parent, name, parameters = args
            return FakePoller(self._store(name, parameters, parent), done=self.poller_done)
        name, parameters = args
        return FakePoller(self._store(name, parameters), done=self.poller_done)

    # Secret readers (source side)

    def get_policy_properties_with_secrets(
        self, resource_group: str, account_name: str, name: str
    ) -> ContentKeyPolicyProperties:
        if name in self.secrets:
            return self.secrets[name]
        policy = self.items[name]
        return ContentKeyPolicyProperties(description=policy.description, options=policy.options)

    def list_content_keys(
        self, resource_group: str, account_name: str, name: str
    ) -> ListContentKeysResponse:
        return ListContentKeysResponse(content_keys=self.content_keys.get(name, []))

    def list_container_sas(
        self, resource_group: str, account_name: str, asset_name: str, parameters: Any
    ) -> AssetContainerSas:
        self.sas_requests.append(parameters)
        url = self.sas_urls.get(asset_name, f"https://{account_name}.blob.example/asset-{asset_name}?sv=sas")
        return AssetContainerSas(asset_container_sas_urls=[url])


class FakeMediaServicesClient:
    """Stand-in for AzureMediaServices exposing one fake group per collection."""

    def __init__(self) -> None:
        self.account_filters = FakeOperationGroup()
        self.content_key_policies = FakeOperationGroup()
        self.transforms = FakeOperationGroup()
        self.streaming_endpoints = FakeOperationGroup()
        self.assets = FakeOperationGroup()
        self.asset_filters = FakeOperationGroup()
        self.streaming_locators = FakeOperationGroup()
        self.live_events = FakeOperationGroup()
        self.live_outputs = FakeOperationGroup()


@pytest.fixture
def source_context() -> AccountContext:
    return AccountContext(
        aad_tenant_id="source-tenant-id",
        aad_client_id="source-client-id",
        aad_secret="source-secret",
        subscription_id="source-subscription-id",
        resource_group="source-rg",
        account_name="sourceams",
        storage_account_name="sourcestorage",
        location="West US 2",
    )


@pytest.fixture
def destination_context() -> AccountContext:
    return AccountContext(
        aad_tenant_id="destination-tenant-id",
        aad_client_id="destination-client-id",
        aad_secret="destination-secret",
        subscription_id="destination-subscription-id",
        resource_group="destination-rg",
        account_name="destinationams",
        storage_account_name="destinationstorage",
        location="East US",
    )


def make_misc(**overrides: Any) -> MiscellaneousSettings:
    values: Dict[str, Any] = {"retry_delay": 0.0}
    values.update(overrides)
    return MiscellaneousSettings(**values)


@pytest.fixture
def misc() -> MiscellaneousSettings:
    return make_misc()


@pytest.fixture
def app_settings(source_context, destination_context) -> AppSettings:
    return AppSettings(
        source_config=source_context,
        destination_config=destination_context,
        miscellaneous=make_misc(copy_asset_content=False),
    )


@pytest.fixture
def source_client() -> FakeMediaServicesClient:
    return FakeMediaServicesClient()


@pytest.fixture
def destination_client() -> FakeMediaServicesClient:
    return FakeMediaServicesClient()


@pytest.fixture
def bind(source_client, destination_client, source_context, destination_context):
    """Initialize a reconciler against the fake clients."""

    def _bind(reconciler, collection, auxiliary=None, misc=None):
        reconciler.initialize(
            getattr(source_client, collection),
            getattr(destination_client, collection),
            source_context,
            destination_context,
            misc or make_misc(),
            auxiliary_source=getattr(source_client, auxiliary) if auxiliary else None,
            auxiliary_destination=getattr(destination_client, auxiliary) if auxiliary else None,
        )
        return reconciler

    return _bind


@pytest.fixture
def misc_factory():
    return make_misc
