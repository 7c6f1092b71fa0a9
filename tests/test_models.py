"""Tests for resource configuration models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from provider.models import (
    AccessLogSettings,
    ApiGatewayStageConfig,
    AppsyncFunctionConfig,
    AppsyncResolverConfig,
    MqConfigurationConfig,
    RouteSettings,
    VpcLinkConfig,
)

TEMPLATES = {
    "request_mapping_template": '{"version": "2017-02-28", "operation": "Invoke"}',
    "response_mapping_template": "$util.toJson($ctx.result)",
}


class TestTaggedResourceConfig:
    """Tests for shared tag validation."""

    def test_reserved_prefix_rejected(self) -> None:
        """Test that aws: tag keys cannot be declared."""
        with pytest.raises(ValidationError) as exc_info:
            VpcLinkConfig(name="l", subnet_ids=["s"], tags={"aws:owner": "x"})

        assert "reserved" in str(exc_info.value)

    def test_unknown_field_rejected(self) -> None:
        """Test extra=forbid."""
        with pytest.raises(ValidationError):
            VpcLinkConfig(name="l", subnet_ids=["s"], colour="blue")


class TestVpcLinkConfig:
    """Tests for VpcLinkConfig."""

    def test_ids_sorted_and_deduplicated(self) -> None:
        """Test that id lists compare as sets."""
        config = VpcLinkConfig(
            name="link",
            subnet_ids=["subnet-b", "subnet-a", "subnet-b"],
            security_group_ids=["sg-2", "sg-1"],
        )

        assert config.subnet_ids == ["subnet-a", "subnet-b"]
        assert config.security_group_ids == ["sg-1", "sg-2"]

    def test_subnets_required(self) -> None:
        """Test that at least one subnet is needed."""
        with pytest.raises(ValidationError):
            VpcLinkConfig(name="link", subnet_ids=[])


class TestApiGatewayStageConfig:
    """Tests for ApiGatewayStageConfig."""

    def test_minimal(self) -> None:
        """Test defaults."""
        config = ApiGatewayStageConfig(api_id="a1b2c3", name="prod")

        assert config.auto_deploy is False
        assert config.route_settings == []
        assert config.default_route_settings is None

    def test_name_cannot_contain_slash(self) -> None:
        """Test that the name stays decodable from the stage ID."""
        with pytest.raises(ValidationError):
            ApiGatewayStageConfig(api_id="a1", name="prod/v2")

    def test_all_default_route_settings_dropped(self) -> None:
        """Test that all-default settings normalize to None."""
        config = ApiGatewayStageConfig(
            api_id="a1", name="prod", default_route_settings={"data_trace_enabled": False}
        )
        assert config.default_route_settings is None

    def test_route_settings_sorted_and_unique(self) -> None:
        """Test route_settings ordering and duplicate detection."""
        config = ApiGatewayStageConfig(
            api_id="a1",
            name="prod",
            route_settings=[
                {"route_key": "POST /b", "throttling_burst_limit": 5},
                {"route_key": "GET /a", "detailed_metrics_enabled": True},
            ],
        )
        assert [rs.route_key for rs in config.route_settings] == ["GET /a", "POST /b"]

        with pytest.raises(ValidationError) as exc_info:
            ApiGatewayStageConfig(
                api_id="a1",
                name="prod",
                route_settings=[{"route_key": "GET /a"}, {"route_key": "GET /a"}],
            )
        assert "duplicate route_key" in str(exc_info.value)

    def test_logging_level_validated(self) -> None:
        """Test logging level allowlist."""
        assert RouteSettings(logging_level="INFO").logging_level == "INFO"
        with pytest.raises(ValidationError):
            RouteSettings(logging_level="VERBOSE")

    def test_negative_throttling_rejected(self) -> None:
        """Test throttling bounds."""
        with pytest.raises(ValidationError):
            RouteSettings(throttling_rate_limit=-1)

    def test_access_log_destination(self) -> None:
        """Test ARN check and ':*' suffix normalization."""
        settings = AccessLogSettings(
            destination_arn="arn:aws:logs:us-east-1:123456789012:log-group:api:*",
            format="$context.requestId",
        )
        assert settings.destination_arn == "arn:aws:logs:us-east-1:123456789012:log-group:api"

        with pytest.raises(ValidationError):
            AccessLogSettings(destination_arn="log-group:api", format="$context.requestId")


class TestMqConfigurationConfig:
    """Tests for MqConfigurationConfig."""

    def test_engine_type_canonicalized(self) -> None:
        """Test that engine type matching is case-insensitive."""
        config = MqConfigurationConfig(
            name="cfg", engine_type="activemq", engine_version="5.17.6", data="<broker/>"
        )
        assert config.engine_type == "ActiveMQ"

    def test_unknown_engine_type(self) -> None:
        """Test engine type allowlist."""
        with pytest.raises(ValidationError) as exc_info:
            MqConfigurationConfig(
                name="cfg", engine_type="kafka", engine_version="1", data="<broker/>"
            )
        assert "engine_type" in str(exc_info.value)


class TestAppsyncResolverConfig:
    """Tests for AppsyncResolverConfig."""

    def test_unit_resolver(self) -> None:
        """Test that a data source makes a UNIT resolver."""
        config = AppsyncResolverConfig(
            api_id="abc123", type_name="Query", field_name="getPost", datasource_name="posts",
            **TEMPLATES,
        )
        assert config.resolver_kind == "UNIT"

    def test_pipeline_resolver(self) -> None:
        """Test that a pipeline config makes a PIPELINE resolver."""
        config = AppsyncResolverConfig(
            api_id="abc123",
            type_name="Query",
            field_name="getPost",
            pipeline_config={"functions": ["fn1", "fn2"]},
            **TEMPLATES,
        )
        assert config.resolver_kind == "PIPELINE"

    def test_datasource_conflicts_with_pipeline(self) -> None:
        """Test mutual exclusion."""
        with pytest.raises(ValidationError) as exc_info:
            AppsyncResolverConfig(
                api_id="abc123",
                type_name="Query",
                field_name="getPost",
                datasource_name="posts",
                pipeline_config={"functions": ["fn1"]},
                **TEMPLATES,
            )
        assert "conflicts" in str(exc_info.value)

    def test_graphql_names(self) -> None:
        """Test GraphQL name validation."""
        with pytest.raises(ValidationError):
            AppsyncResolverConfig(
                api_id="abc123", type_name="1Query", field_name="getPost", **TEMPLATES
            )
        with pytest.raises(ValidationError):
            AppsyncResolverConfig(
                api_id="abc123", type_name="Query", field_name="get-post", **TEMPLATES
            )

    def test_api_id_cannot_contain_dash(self) -> None:
        """Test that the api id stays decodable from the composite ID."""
        with pytest.raises(ValidationError):
            AppsyncResolverConfig(
                api_id="abc-123", type_name="Query", field_name="getPost", **TEMPLATES
            )


class TestAppsyncFunctionConfig:
    """Tests for AppsyncFunctionConfig."""

    def test_defaults(self) -> None:
        """Test function version default."""
        config = AppsyncFunctionConfig(
            api_id="abc123", name="loadUser", datasource_name="users", **TEMPLATES
        )
        assert config.function_version == "2018-05-29"
        assert config.description is None
