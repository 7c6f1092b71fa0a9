"""API Gateway v2 stage adapter.

A stage is addressed by API id and stage name, so its resource ID (and its
import ID) is ``api_id/stage_name``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from botocore.exceptions import ClientError

from .clients import is_not_found
from .composite_id import APIGATEWAY_STAGE_ID
from .errors import ResourceNotFoundError
from .models import ApiGatewayStageConfig, RouteSettings
from .resource import ResourceAdapter, ResourceState
from .tags import ignore_system_tags, reconcile_tags

logger = logging.getLogger(__name__)

# snake_case attribute -> API member
_ROUTE_SETTING_FIELDS = {
    "data_trace_enabled": "DataTraceEnabled",
    "detailed_metrics_enabled": "DetailedMetricsEnabled",
    "logging_level": "LoggingLevel",
    "throttling_burst_limit": "ThrottlingBurstLimit",
    "throttling_rate_limit": "ThrottlingRateLimit",
}

_DEFAULT_ROUTE_SETTINGS = RouteSettings().model_dump()


def expand_route_settings(settings: RouteSettings) -> dict[str, Any]:
    """Convert route settings to the API shape, omitting unset levels."""
    values = settings.model_dump()
    expanded = {
        api_name: values[name]
        for name, api_name in _ROUTE_SETTING_FIELDS.items()
        if values[name] is not None
    }
    return expanded


def flatten_route_settings(settings: Mapping[str, Any] | None) -> dict[str, Any] | None:
    """Convert API route settings to attributes, None when all-default."""
    if not settings:
        return None

    flattened = dict(_DEFAULT_ROUTE_SETTINGS)
    for name, api_name in _ROUTE_SETTING_FIELDS.items():
        if api_name in settings:
            flattened[name] = settings[api_name]
    flattened["throttling_rate_limit"] = float(flattened["throttling_rate_limit"])

    if flattened == _DEFAULT_ROUTE_SETTINGS:
        return None
    return flattened


class ApiGatewayStageAdapter(ResourceAdapter):
    """Manages ``aws_apigatewayv2_stage`` resources."""

    kind = "aws_apigatewayv2_stage"
    config_model = ApiGatewayStageConfig
    force_new_fields = frozenset({"api_id", "name"})

    def __init__(self, client: Any, *, region: str, partition: str = "aws", **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._client = client
        self._region = region
        self._partition = partition

    def arn(self, api_id: str, stage_name: str) -> str:
        return (
            f"arn:{self._partition}:apigateway:{self._region}::"
            f"/apis/{api_id}/stages/{stage_name}"
        )

    def _request(self, config: ApiGatewayStageConfig) -> dict[str, Any]:
        request: dict[str, Any] = {
            "ApiId": config.api_id,
            "StageName": config.name,
            "AutoDeploy": config.auto_deploy,
            "StageVariables": config.stage_variables,
            "RouteSettings": {
                rs.route_key: expand_route_settings(rs) for rs in config.route_settings
            },
        }
        if config.deployment_id is not None:
            request["DeploymentId"] = config.deployment_id
        if config.description is not None:
            request["Description"] = config.description
        if config.client_certificate_id is not None:
            request["ClientCertificateId"] = config.client_certificate_id
        if config.access_log_settings is not None:
            request["AccessLogSettings"] = {
                "DestinationArn": config.access_log_settings.destination_arn,
                "Format": config.access_log_settings.format,
            }
        if config.default_route_settings is not None:
            request["DefaultRouteSettings"] = expand_route_settings(config.default_route_settings)
        return request

    def create(self, config: ApiGatewayStageConfig) -> ResourceState:
        request = self._request(config)
        if config.tags:
            request["Tags"] = config.tags

        self._client.create_stage(**request)

        resource_id = APIGATEWAY_STAGE_ID.encode(config.api_id, config.name)
        logger.info("Created API Gateway stage", extra={"kind": self.kind, "resource_id": resource_id})

        state = self.read(resource_id)
        if state is None:
            raise ResourceNotFoundError(self.kind, resource_id)
        return state

    def read(self, resource_id: str) -> ResourceState | None:
        api_id, stage_name = APIGATEWAY_STAGE_ID.decode(resource_id)

        try:
            stage = self._client.get_stage(ApiId=api_id, StageName=stage_name)
        except ClientError as e:
            if is_not_found(e):
                self._log_gone(resource_id)
                return None
            raise

        access_log = stage.get("AccessLogSettings") or {}
        route_settings = []
        for route_key, settings in sorted((stage.get("RouteSettings") or {}).items()):
            flattened = flatten_route_settings(settings) or dict(_DEFAULT_ROUTE_SETTINGS)
            route_settings.append({**flattened, "route_key": route_key})

        return ResourceState(
            kind=self.kind,
            id=resource_id,
            attributes={
                "api_id": api_id,
                "name": stage.get("StageName", stage_name),
                "arn": self.arn(api_id, stage_name),
                "deployment_id": stage.get("DeploymentId"),
                "description": stage.get("Description"),
                "auto_deploy": bool(stage.get("AutoDeploy", False)),
                "client_certificate_id": stage.get("ClientCertificateId"),
                "stage_variables": dict(stage.get("StageVariables") or {}),
                "access_log_settings": (
                    {
                        "destination_arn": access_log.get("DestinationArn"),
                        "format": access_log.get("Format"),
                    }
                    if access_log.get("DestinationArn")
                    else None
                ),
                "default_route_settings": flatten_route_settings(stage.get("DefaultRouteSettings")),
                "route_settings": route_settings,
                "tags": ignore_system_tags(stage.get("Tags")),
            },
        )

    def update(self, prior: ResourceState, config: ApiGatewayStageConfig) -> ResourceState | None:
        api_id, stage_name = APIGATEWAY_STAGE_ID.decode(prior.id)
        desired_keys = {rs.route_key for rs in config.route_settings}

        try:
            request = self._request(config)
            if config.access_log_settings is None and prior.attributes.get("access_log_settings"):
                # An empty object clears access logging
                request["AccessLogSettings"] = {}
            self._client.update_stage(**request)

            for route in prior.attributes.get("route_settings") or []:
                if route["route_key"] not in desired_keys:
                    self._client.delete_route_settings(
                        ApiId=api_id, StageName=stage_name, RouteKey=route["route_key"]
                    )

            arn = self.arn(api_id, stage_name)
            reconcile_tags(
                prior.attributes.get("tags"),
                config.tags,
                add=lambda tags: self._client.tag_resource(ResourceArn=arn, Tags=tags),
                remove=lambda keys: self._client.untag_resource(
                    ResourceArn=arn, TagKeys=sorted(keys)
                ),
            )
        except ClientError as e:
            if is_not_found(e):
                self._log_gone(prior.id)
                return None
            raise

        return self.read(prior.id)

    def delete(self, resource_id: str) -> None:
        api_id, stage_name = APIGATEWAY_STAGE_ID.decode(resource_id)
        try:
            self._client.delete_stage(ApiId=api_id, StageName=stage_name)
        except ClientError as e:
            if is_not_found(e):
                return
            raise
        logger.info("Deleted API Gateway stage", extra={"kind": self.kind, "resource_id": resource_id})
