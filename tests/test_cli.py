"""Tests for the replicate-ams CLI."""

import json
import logging
from unittest.mock import Mock, patch

import pytest
from azure.core.exceptions import DeserializationError
from azure.mgmt.media.models import (
    BuiltInStandardEncoderPreset,
    ContentKeyPolicy,
    Transform,
    TransformOutput,
)
from click.testing import CliRunner

from conftest import FakeMediaServicesClient, api_error, named
from replicate_ams.cli import cli
from replicate_ams.commands.run import build_cli_overrides
from replicate_ams.credential_provider import ClientPair
from replicate_ams.exceptions import AzureAuthenticationError


def account(role: str):
    return {
        "AadTenantId": f"{role}-tenant",
        "AadClientId": f"{role}-client",
        "AadSecret": f"{role}-secret",
        "SubscriptionId": f"{role}-subscription",
        "ResourceGroup": f"{role}-rg",
        "AccountName": f"{role}ams",
        "StorageAccountName": f"{role}storage",
        "Location": "West Europe",
    }


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "appsettings.json"
    path.write_text(
        json.dumps(
            {
                "appConfig": {
                    "sourceConfig": account("source"),
                    "destinationConfig": account("destination"),
                    "miscellaneous": {"CopyUsingLocalNetwork": False, "CopyAssetContent": False},
                }
            }
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def clients():
    source = FakeMediaServicesClient()
    destination = FakeMediaServicesClient()
    source.transforms.items["T1"] = named(
        Transform(
            outputs=[TransformOutput(preset=BuiltInStandardEncoderPreset(preset_name="AdaptiveStreaming"))]
        ),
        "T1",
    )
    source.content_key_policies.items["ckp1"] = named(
        ContentKeyPolicy(description="policy", options=[]), "ckp1"
    )
    return ClientPair(source, destination)


@pytest.fixture
def provider(clients):
    instance = Mock()
    instance.create_client_pair.return_value = clients
    with patch(
        "replicate_ams.commands.run.MediaServicesClientProvider", return_value=instance
    ) as factory:
        yield factory


def invoke(*args):
    return CliRunner().invoke(cli, list(args))


class TestRunCommand:
    def test_successful_run(self, config_file, tmp_path, provider, clients):
        result = invoke(
            "run", "--config", str(config_file), "--log-dir", str(tmp_path / "logs"), "--no-wait"
        )

        assert result.exit_code == 0, result.output
        assert list(clients.destination.transforms.items) == ["T1"]
        assert "Replication summary" in result.output
        log_files = list((tmp_path / "logs").glob("ReplicateAMS_*.log"))
        assert len(log_files) == 1
        log_text = log_files[0].read_text(encoding="utf-8")
        assert "Step 3 of 7: Replicate transforms" in log_text
        assert "AMS Account: sourceams --> destinationams" in log_text
        assert "Replication done successfully!" in log_text

    def test_dry_run_creates_nothing(self, config_file, tmp_path, provider, clients):
        result = invoke(
            "run",
            "--config", str(config_file),
            "--log-file", str(tmp_path / "run.log"),
            "--dry-run",
            "--no-wait",
        )

        assert result.exit_code == 0, result.output
        assert clients.destination.transforms.created == []
        assert "dry run" in result.output

    def test_fail_fast_exits_with_error(self, config_file, tmp_path, provider, clients):
        clients.destination.content_key_policies.failures["ckp1"] = api_error(
            "BadRequest", "Invalid policy"
        )

        result = invoke(
            "run", "--config", str(config_file), "--log-file", str(tmp_path / "run.log"), "--no-wait"
        )

        assert result.exit_code == 1
        assert clients.destination.transforms.created == []
        log_text = (tmp_path / "run.log").read_text(encoding="utf-8")
        assert "API error code 'BadRequest' and message 'Invalid policy'" in log_text
        assert "Replication done successfully!" not in log_text

    def test_continue_policy_runs_remaining_steps(self, config_file, tmp_path, provider, clients):
        clients.destination.content_key_policies.failures["ckp1"] = api_error()

        result = invoke(
            "run",
            "--config", str(config_file),
            "--log-file", str(tmp_path / "run.log"),
            "--failure-policy", "continue",
            "--no-wait",
        )

        assert result.exit_code == 1
        assert list(clients.destination.transforms.items) == ["T1"]

    def test_malformed_response_does_not_stop_continue_run(
        self, config_file, tmp_path, provider, clients
    ):
        clients.source.account_filters.list = Mock(side_effect=DeserializationError("bad payload"))

        result = invoke(
            "run",
            "--config", str(config_file),
            "--log-file", str(tmp_path / "run.log"),
            "--failure-policy", "continue",
            "--no-wait",
        )

        assert result.exit_code == 1
        assert list(clients.destination.transforms.items) == ["T1"]
        log_text = (tmp_path / "run.log").read_text(encoding="utf-8")
        assert "bad payload" in log_text

    def test_unexpected_error_is_logged_with_stack_trace(self, config_file, tmp_path):
        instance = Mock()
        instance.create_client_pair.side_effect = RuntimeError("socket closed")
        with patch("replicate_ams.commands.run.MediaServicesClientProvider", return_value=instance):
            result = invoke(
                "run", "--config", str(config_file), "--log-file", str(tmp_path / "run.log"), "--no-wait"
            )

        assert result.exit_code == 1
        log_text = (tmp_path / "run.log").read_text(encoding="utf-8")
        assert "***** Exception occurred! *****" in log_text
        assert "Message: socket closed" in log_text
        assert "Stack trace:" in log_text
        assert "RuntimeError" in log_text

    def test_skip_option(self, config_file, tmp_path, provider, clients):
        result = invoke(
            "run",
            "--config", str(config_file),
            "--log-file", str(tmp_path / "run.log"),
            "--skip", "transforms",
            "--no-wait",
        )

        assert result.exit_code == 0, result.output
        assert clients.destination.transforms.created == []

    def test_authentication_failure(self, config_file, tmp_path):
        instance = Mock()
        instance.create_client_pair.side_effect = AzureAuthenticationError(
            "Authentication failed for source account 'sourceams'"
        )
        with patch("replicate_ams.commands.run.MediaServicesClientProvider", return_value=instance):
            result = invoke(
                "run", "--config", str(config_file), "--log-file", str(tmp_path / "run.log"), "--no-wait"
            )

        assert result.exit_code == 1
        assert "Authentication failed" in result.output

    def test_missing_configuration(self, tmp_path, provider):
        result = invoke(
            "run",
            "--config", str(tmp_path / "absent.json"),
            "--log-file", str(tmp_path / "run.log"),
            "--no-wait",
        )

        assert result.exit_code == 1
        provider.assert_not_called()

    def test_build_cli_overrides(self):
        overrides = build_cli_overrides(False, None, (), None, None)
        assert all(value is None for value in overrides["miscellaneous"].values())

        overrides = build_cli_overrides(True, "continue", ("assets",), True, 4)
        assert overrides["miscellaneous"] == {
            "dry_run": True,
            "failure_policy": "continue",
            "skip_categories": ["assets"],
            "copy_using_local_network": True,
            "max_parallel_operations": 4,
        }


class TestConfigCommands:
    def test_show_config_hides_secrets(self, config_file):
        result = invoke("show-config", "--config", str(config_file))

        assert result.exit_code == 0, result.output
        assert "sourceams" in result.output
        assert "source-secret" not in result.output

    def test_show_config_reports_errors(self, tmp_path):
        result = invoke("show-config", "--config", str(tmp_path / "absent.json"))
        assert result.exit_code == 1

    def test_init_config(self, tmp_path):
        target = tmp_path / "appsettings.json"

        result = invoke("init-config", "--config", str(target))
        assert result.exit_code == 0, result.output
        assert target.exists()

        result = invoke("init-config", "--config", str(target))
        assert result.exit_code == 1

        result = invoke("init-config", "--config", str(target), "--force")
        assert result.exit_code == 0
