"""Tests for the retry helper."""

from unittest.mock import AsyncMock, Mock, patch

import pytest
from azure.core.exceptions import DeserializationError, ServiceResponseError

from conftest import api_error
from replicate_ams.exceptions import AzureServiceError, MediaServicesApiError
from replicate_ams.utils import call_with_retry, is_transient


class TestIsTransient:
    def test_network_faults(self):
        assert is_transient(ServiceResponseError("reset"))

    @pytest.mark.parametrize("status", [408, 429, 500, 503])
    def test_transient_status(self, status):
        assert is_transient(api_error("Busy", "busy", status))

    @pytest.mark.parametrize("status", [400, 401, 404, 409])
    def test_client_errors(self, status):
        assert not is_transient(api_error("Client", "client", status))

    def test_other_exceptions(self):
        assert not is_transient(ValueError("x"))


class TestCallWithRetry:
    @pytest.mark.asyncio
    async def test_returns_result(self):
        func = Mock(return_value=42)
        assert await call_with_retry(func, "a", operation="op", key="v") == 42
        func.assert_called_once_with("a", key="v")

    @pytest.mark.asyncio
    async def test_retries_transient_faults_with_backoff(self):
        func = Mock(side_effect=[api_error("Throttled", "slow down", 429), "ok"])
        with patch("replicate_ams.utils.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
            result = await call_with_retry(func, operation="op", retry_delay=0.5)

        assert result == "ok"
        assert func.call_count == 2
        sleep.assert_called_once_with(0.5)

    @pytest.mark.asyncio
    async def test_does_not_retry_bad_request(self):
        func = Mock(side_effect=api_error("BadRequest", "invalid"))

        with pytest.raises(MediaServicesApiError) as exc_info:
            await call_with_retry(func, operation="create transform 'T1'", retry_delay=0)

        assert func.call_count == 1
        assert exc_info.value.api_error_code == "BadRequest"
        assert exc_info.value.operation == "create transform 'T1'"

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self):
        func = Mock(side_effect=ServiceResponseError("reset"))

        with pytest.raises(AzureServiceError):
            await call_with_retry(func, operation="op", max_retries=2, retry_delay=0)

        assert func.call_count == 3

    @pytest.mark.asyncio
    async def test_non_azure_errors_propagate(self):
        func = Mock(side_effect=KeyError("boom"))
        with pytest.raises(KeyError):
            await call_with_retry(func, operation="op", retry_delay=0)

    @pytest.mark.asyncio
    async def test_deserialization_errors_are_wrapped(self):
        func = Mock(side_effect=DeserializationError("bad payload"))

        with pytest.raises(AzureServiceError) as exc_info:
            await call_with_retry(func, operation="list source transforms", retry_delay=0)

        assert func.call_count == 1
        assert "bad payload" in exc_info.value.message
        assert isinstance(exc_info.value.cause, DeserializationError)
