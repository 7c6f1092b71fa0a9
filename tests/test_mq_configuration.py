"""Tests for the Amazon MQ configuration adapter."""

from __future__ import annotations

import base64
import logging

import pytest
from aws_mock import MockMqClient

from provider.errors import AdapterError
from provider.models import MqConfigurationConfig
from provider.mq_configuration import MqConfigurationAdapter
from provider.resource import PlanAction

BROKER_XML = (
    '<broker xmlns="http://activemq.apache.org/schema/core" schedulerSupport="true">'
    "<plugins/></broker>"
)


def pretty_print(data: str) -> str:
    """Reformat the way the MQ service hands configurations back."""
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
        + data.replace("><", ">\n  <")
    )


@pytest.fixture
def client() -> MockMqClient:
    return MockMqClient(rewrite_data=pretty_print)


@pytest.fixture
def adapter(client: MockMqClient) -> MqConfigurationAdapter:
    return MqConfigurationAdapter(client)


def mq_config(**overrides: object) -> MqConfigurationConfig:
    values: dict[str, object] = {
        "name": "broker-config",
        "engine_type": "ActiveMQ",
        "engine_version": "5.17.6",
        "data": BROKER_XML,
        "description": "initial",
        "tags": {"env": "test"},
    }
    values.update(overrides)
    return MqConfigurationConfig(**values)  # type: ignore[arg-type]


class TestMqConfigurationCreate:
    """Tests for create and read."""

    def test_create_pushes_data_revision(
        self, adapter: MqConfigurationAdapter, client: MockMqClient
    ) -> None:
        """Test that data is sent base64-encoded by a follow-up update."""
        state = adapter.create(mq_config())

        update = client.calls_to("update_configuration")[0]
        assert base64.b64decode(update["Data"]).decode("utf-8") == BROKER_XML
        assert update["Description"] == "initial"
        assert state.attributes["latest_revision"] == 2
        assert state.attributes["tags"] == {"env": "test"}
        assert state.attributes["engine_type"] == "ActiveMQ"

    def test_reformatted_data_is_no_change(self, adapter: MqConfigurationAdapter) -> None:
        """Test that AWS reformatting does not plan an update."""
        state = adapter.create(mq_config())

        assert state.attributes["data"] != BROKER_XML
        assert adapter.plan(state, mq_config()) is PlanAction.NO_CHANGE

    def test_real_data_change_is_update(self, adapter: MqConfigurationAdapter) -> None:
        """Test that an actual document change is planned."""
        state = adapter.create(mq_config())
        changed = BROKER_XML.replace('schedulerSupport="true"', 'schedulerSupport="false"')

        assert adapter.diff(state, mq_config(data=changed)) == ["data"]
        assert adapter.plan(state, mq_config(data=changed)) is PlanAction.UPDATE

    def test_engine_version_change_is_replace(self, adapter: MqConfigurationAdapter) -> None:
        """Test force-new fields."""
        state = adapter.create(mq_config())

        assert adapter.plan(state, mq_config(engine_version="5.18.4")) is PlanAction.REPLACE

    def test_read_missing(self, adapter: MqConfigurationAdapter) -> None:
        """Test that a missing configuration reads as None."""
        assert adapter.read("c-missing") is None

    @pytest.mark.parametrize("operation", ["describe_configuration_revision", "list_tags"])
    def test_vanishes_during_read(
        self, adapter: MqConfigurationAdapter, client: MockMqClient, operation: str
    ) -> None:
        """Test that a deletion between the read calls also reads as None."""
        state = adapter.create(mq_config())
        client.fail_next(operation, "NotFoundException")

        assert adapter.read(state.id) is None

    def test_undecodable_data(self, adapter: MqConfigurationAdapter, client: MockMqClient) -> None:
        """Test that corrupt revision data is reported."""
        state = adapter.create(mq_config())
        client.configurations[state.id]["Revisions"][2]["Data"] = "%%% not base64 %%%"

        with pytest.raises(AdapterError, match="undecodable"):
            adapter.read(state.id)


class TestMqConfigurationUpdate:
    """Tests for update and delete."""

    def test_update_data_creates_revision(
        self, adapter: MqConfigurationAdapter, client: MockMqClient
    ) -> None:
        """Test that a data change pushes a new revision."""
        state = adapter.create(mq_config())
        changed = BROKER_XML.replace("<plugins/>", "<plugins><statisticsBrokerPlugin/></plugins>")

        updated = adapter.update(state, mq_config(data=changed))

        assert updated is not None
        assert updated.attributes["latest_revision"] == 3
        assert adapter.plan(updated, mq_config(data=changed)) is PlanAction.NO_CHANGE

    def test_tag_only_update_skips_revision(
        self, adapter: MqConfigurationAdapter, client: MockMqClient
    ) -> None:
        """Test that tags are reconciled without a new revision."""
        state = adapter.create(mq_config())
        client.calls.clear()

        updated = adapter.update(state, mq_config(tags={"env": "prod", "owner": "me"}))

        assert updated is not None
        assert client.calls_to("update_configuration") == []
        assert client.calls_to("delete_tags") == []
        assert client.calls_to("create_tags")[0]["Tags"] == {"env": "prod", "owner": "me"}
        assert updated.attributes["tags"] == {"env": "prod", "owner": "me"}

    def test_update_vanished(self, adapter: MqConfigurationAdapter, client: MockMqClient) -> None:
        """Test that an out-of-band deletion returns None."""
        state = adapter.create(mq_config())
        del client.configurations[state.id]

        assert adapter.update(state, mq_config(description="changed")) is None

    def test_delete_is_noop(
        self,
        adapter: MqConfigurationAdapter,
        client: MockMqClient,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Test that delete makes no API call and warns."""
        state = adapter.create(mq_config())
        client.calls.clear()

        with caplog.at_level(logging.WARNING, logger="provider.mq_configuration"):
            adapter.delete(state.id)

        assert client.calls == []
        assert state.id in client.configurations
        assert "cannot be deleted" in caplog.text
