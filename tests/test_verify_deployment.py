"""
Tests for the deployment verification script.
"""
import runpy
import warnings
from unittest.mock import MagicMock, patch

import httpx
import pytest

from geogossip import verify_deployment
from geogossip.database import FEED_INDEX, GOSSIP_TYPE_INDEX


def table_with_indexes(*names):
    table = MagicMock()
    table.table_status = "ACTIVE"
    table.global_secondary_indexes = [{"IndexName": name} for name in names]
    return table


class TestChecks:
    """Tests for the individual checks."""

    def test_table_with_both_indexes_passes(self):
        with patch("geogossip.verify_deployment.boto3.resource") as mock_resource:
            mock_resource.return_value.Table.return_value = table_with_indexes(FEED_INDEX, GOSSIP_TYPE_INDEX)

            assert verify_deployment.check_dynamodb_table("gossips") is True

    def test_missing_index_fails(self):
        with patch("geogossip.verify_deployment.boto3.resource") as mock_resource:
            mock_resource.return_value.Table.return_value = table_with_indexes(FEED_INDEX)

            assert verify_deployment.check_dynamodb_table("gossips") is False

    def test_lambda_requires_table_env(self):
        config = {"Runtime": "python3.12", "Handler": "geogossip.lambda_handler.handler"}
        with patch("geogossip.verify_deployment.boto3.client") as mock_client:
            mock_client.return_value.get_function.return_value = {"Configuration": config}

            assert verify_deployment.check_lambda_function("geogossip-api") is False

            config["Environment"] = {"Variables": {"DYNAMODB_TABLE_NAME": "gossips"}}
            assert verify_deployment.check_lambda_function("geogossip-api") is True

    def test_health_check(self):
        with patch("geogossip.verify_deployment.httpx.get") as mock_get:
            mock_get.return_value = httpx.Response(200, json={"status": "ok"})
            assert verify_deployment.check_api_health("https://api.test") is True

            mock_get.side_effect = httpx.ConnectError("offline")
            assert verify_deployment.check_api_health("https://api.test") is False


class TestMain:
    """Tests for the summary exit status."""

    def test_exit_status_reflects_failures(self):
        with patch.object(verify_deployment, "check_dynamodb_table", return_value=True), \
                patch.object(verify_deployment, "check_lambda_function", return_value=True), \
                patch.object(verify_deployment, "check_api_health", return_value=False):
            assert verify_deployment.main() == 1

        with patch.object(verify_deployment, "check_dynamodb_table", return_value=True), \
                patch.object(verify_deployment, "check_lambda_function", return_value=True), \
                patch.object(verify_deployment, "check_api_health", return_value=True):
            assert verify_deployment.main() == 0

    def test_runs_as_module(self):
        lambda_config = {
            "Runtime": "python3.12",
            "Handler": "geogossip.lambda_handler.handler",
            "Environment": {"Variables": {"DYNAMODB_TABLE_NAME": "gossips"}},
        }
        with patch("boto3.resource") as mock_resource, \
                patch("boto3.client") as mock_client, \
                patch("httpx.get", return_value=httpx.Response(200, json={"status": "ok"})):
            mock_resource.return_value.Table.return_value = table_with_indexes(FEED_INDEX, GOSSIP_TYPE_INDEX)
            mock_client.return_value.get_function.return_value = {"Configuration": lambda_config}

            with warnings.catch_warnings():
                # パッケージ import 済みのため runpy が出す再実行の警告
                warnings.simplefilter("ignore", RuntimeWarning)
                with pytest.raises(SystemExit) as exc_info:
                    runpy.run_module("geogossip.verify_deployment", run_name="__main__")

        assert exc_info.value.code == 0
