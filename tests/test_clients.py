"""Tests for AWS client creation and error classification."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

from aws_mock import client_error

from provider.clients import AwsClients, error_code, is_not_found
from provider.config import Config


class TestAwsClients:
    """Tests for AwsClients."""

    def test_client_created_once_per_service(self, tmp_path: Path) -> None:
        """Test that clients are cached and share the retry config."""
        session = MagicMock()
        config = Config(region="eu-west-1", state_file=tmp_path / "state.json", aws_max_attempts=5)
        clients = AwsClients(config, session=session)

        first = clients.client("appsync")
        second = clients.client("appsync")
        clients.client("mq")

        assert first is second
        assert [c.args[0] for c in session.client.call_args_list] == ["appsync", "mq"]
        boto_config = session.client.call_args.kwargs["config"]
        assert boto_config.retries == {"max_attempts": 5, "mode": "standard"}

    def test_no_client_until_requested(self, tmp_path: Path) -> None:
        """Test that construction makes no client."""
        session = MagicMock()
        AwsClients(Config(region="eu-west-1", state_file=tmp_path / "s.json"), session=session)

        session.client.assert_not_called()


class TestErrorClassification:
    """Tests for error_code and is_not_found."""

    def test_not_found_codes(self) -> None:
        """Test both not-found spellings used by the services."""
        assert is_not_found(client_error("NotFoundException", "GetStage")) is True
        assert is_not_found(client_error("ResourceNotFoundException", "GetStage")) is True

    def test_other_errors(self) -> None:
        """Test that other codes and exception types are not not-found."""
        assert is_not_found(client_error("AccessDeniedException", "GetStage")) is False
        assert is_not_found(KeyError("NotFoundException")) is False
        assert error_code(client_error("ConflictException", "CreateStage")) == "ConflictException"
