"""Pydantic models for resource configurations with validation.

These models provide:
1. Type-safe manifest parsing
2. Validation at the boundary (invalid values are rejected at load time,
   never discovered halfway through an apply)
3. A normalized ``model_dump()`` that adapters compare against the
   attributes they read back from AWS
"""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, Field, field_validator, model_validator

from .tags import SYSTEM_TAG_PREFIX

# GraphQL names (types, fields, data sources, functions)
GRAPHQL_NAME_PATTERN = r"^[_A-Za-z][_0-9A-Za-z]*$"

MQ_ENGINE_TYPES = {"ACTIVEMQ": "ActiveMQ", "RABBITMQ": "RabbitMQ"}
STAGE_LOGGING_LEVELS = {"ERROR", "INFO", "OFF"}

GraphQLName = Annotated[str, Field(pattern=GRAPHQL_NAME_PATTERN)]

# =============================================================================
# Base Models
# =============================================================================


class ResourceConfig(BaseModel):
    """Base configuration for every resource kind."""

    model_config = {"extra": "forbid"}  # Reject unknown fields


class TaggedResourceConfig(ResourceConfig):
    """Configuration for resources that carry tags."""

    tags: dict[str, str] = Field(default_factory=dict)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: dict[str, str]) -> dict[str, str]:
        reserved = sorted(k for k in v if k.startswith(SYSTEM_TAG_PREFIX))
        if reserved:
            raise ValueError(f"tag keys with the '{SYSTEM_TAG_PREFIX}' prefix are reserved: {reserved}")
        return v


# =============================================================================
# API Gateway v2
# =============================================================================


class VpcLinkConfig(TaggedResourceConfig):
    """API Gateway v2 VPC link."""

    name: Annotated[str, Field(min_length=1, max_length=128)]
    subnet_ids: Annotated[list[str], Field(min_length=1)]
    security_group_ids: list[str] = Field(default_factory=list)

    @field_validator("subnet_ids", "security_group_ids")
    @classmethod
    def normalize_id_set(cls, v: list[str]) -> list[str]:
        # Order is irrelevant remotely, compare as sorted sets
        return sorted(set(v))


class AccessLogSettings(BaseModel):
    """Stage access logging."""

    model_config = {"extra": "forbid"}

    destination_arn: str
    format: Annotated[str, Field(min_length=1)]

    @field_validator("destination_arn")
    @classmethod
    def validate_arn(cls, v: str) -> str:
        if not v.startswith("arn:"):
            raise ValueError("destination_arn must be an ARN")
        # CloudWatch log group ARNs are accepted with or without the ':*' suffix
        return v.removesuffix(":*")


class RouteSettings(BaseModel):
    """Throttling, metrics and logging for a route (or the stage default)."""

    model_config = {"extra": "forbid"}

    data_trace_enabled: bool = False
    detailed_metrics_enabled: bool = False
    logging_level: str | None = None
    throttling_burst_limit: Annotated[int, Field(ge=0)] = 0
    throttling_rate_limit: Annotated[float, Field(ge=0)] = 0.0

    @field_validator("logging_level")
    @classmethod
    def validate_logging_level(cls, v: str | None) -> str | None:
        if v is not None and v not in STAGE_LOGGING_LEVELS:
            raise ValueError(f"logging_level must be one of {sorted(STAGE_LOGGING_LEVELS)}")
        return v


class RouteSetting(RouteSettings):
    """Settings for one route key."""

    route_key: Annotated[str, Field(min_length=1)]


class ApiGatewayStageConfig(TaggedResourceConfig):
    """API Gateway v2 stage."""

    api_id: Annotated[str, Field(min_length=1)]
    name: Annotated[str, Field(min_length=1, max_length=128)]
    deployment_id: str | None = None
    description: Annotated[str, Field(max_length=1024)] | None = None
    auto_deploy: bool = False
    client_certificate_id: str | None = None
    stage_variables: dict[str, str] = Field(default_factory=dict)
    access_log_settings: AccessLogSettings | None = None
    default_route_settings: RouteSettings | None = None
    route_settings: list[RouteSetting] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if "/" in v:
            raise ValueError("stage name cannot contain '/'")
        return v

    @field_validator("default_route_settings")
    @classmethod
    def drop_default_route_settings(cls, v: RouteSettings | None) -> RouteSettings | None:
        # AWS reports all-default settings the same as none at all
        if v is not None and v == RouteSettings():
            return None
        return v

    @field_validator("route_settings")
    @classmethod
    def validate_route_settings(cls, v: list[RouteSetting]) -> list[RouteSetting]:
        keys = [rs.route_key for rs in v]
        duplicates = sorted({k for k in keys if keys.count(k) > 1})
        if duplicates:
            raise ValueError(f"duplicate route_key in route_settings: {duplicates}")
        return sorted(v, key=lambda rs: rs.route_key)


# =============================================================================
# Amazon MQ
# =============================================================================


class MqConfigurationConfig(TaggedResourceConfig):
    """Amazon MQ broker configuration."""

    name: Annotated[str, Field(min_length=1, max_length=150)]
    engine_type: str
    engine_version: Annotated[str, Field(min_length=1)]
    data: Annotated[str, Field(min_length=1)]
    description: str | None = None

    @field_validator("engine_type")
    @classmethod
    def validate_engine_type(cls, v: str) -> str:
        canonical = MQ_ENGINE_TYPES.get(v.upper())
        if canonical is None:
            raise ValueError(f"engine_type must be one of {sorted(MQ_ENGINE_TYPES.values())}")
        return canonical


# =============================================================================
# AppSync
# =============================================================================


class PipelineConfig(BaseModel):
    """Ordered AppSync functions of a pipeline resolver."""

    model_config = {"extra": "forbid"}

    functions: Annotated[list[str], Field(min_length=1)]


class AppsyncResolverConfig(ResourceConfig):
    """AppSync resolver, addressed by API id, type name and field name."""

    api_id: Annotated[str, Field(min_length=1)]
    type_name: GraphQLName
    field_name: GraphQLName
    request_mapping_template: Annotated[str, Field(min_length=1)]
    response_mapping_template: Annotated[str, Field(min_length=1)]
    datasource_name: GraphQLName | None = None
    pipeline_config: PipelineConfig | None = None

    @field_validator("api_id")
    @classmethod
    def validate_api_id(cls, v: str) -> str:
        if "-" in v:
            raise ValueError("api_id cannot contain '-'")
        return v

    @model_validator(mode="after")
    def check_kind(self) -> AppsyncResolverConfig:
        if self.datasource_name is not None and self.pipeline_config is not None:
            raise ValueError("datasource_name conflicts with pipeline_config")
        return self

    @property
    def resolver_kind(self) -> str:
        return "PIPELINE" if self.pipeline_config is not None else "UNIT"


class AppsyncFunctionConfig(ResourceConfig):
    """AppSync pipeline function."""

    api_id: Annotated[str, Field(min_length=1)]
    name: GraphQLName
    datasource_name: GraphQLName
    request_mapping_template: Annotated[str, Field(min_length=1)]
    response_mapping_template: Annotated[str, Field(min_length=1)]
    description: str | None = None
    function_version: str = "2018-05-29"

    @field_validator("api_id")
    @classmethod
    def validate_api_id(cls, v: str) -> str:
        if "-" in v:
            raise ValueError("api_id cannot contain '-'")
        return v
