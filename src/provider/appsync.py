"""AppSync resolver and function adapters.

Both are keyed by more than one value remotely, so their resource IDs are
composite: ``api_id-type_name-field_name`` for resolvers and
``api_id-function_id`` for functions. The AppSync API uses lowerCamelCase
parameter names.
"""

from __future__ import annotations

import logging
from typing import Any

from botocore.exceptions import ClientError

from .clients import is_not_found
from .composite_id import APPSYNC_FUNCTION_ID, APPSYNC_RESOLVER_ID
from .errors import ResourceNotFoundError
from .models import AppsyncFunctionConfig, AppsyncResolverConfig
from .resource import ResourceAdapter, ResourceState

logger = logging.getLogger(__name__)


class AppsyncResolverAdapter(ResourceAdapter):
    """Manages ``aws_appsync_resolver`` resources."""

    kind = "aws_appsync_resolver"
    config_model = AppsyncResolverConfig
    # All three are part of the ID
    force_new_fields = frozenset({"api_id", "type_name", "field_name"})

    def __init__(self, client: Any, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._client = client

    def _request(self, config: AppsyncResolverConfig) -> dict[str, Any]:
        request: dict[str, Any] = {
            "apiId": config.api_id,
            "typeName": config.type_name,
            "fieldName": config.field_name,
            "requestMappingTemplate": config.request_mapping_template,
            "responseMappingTemplate": config.response_mapping_template,
            "kind": config.resolver_kind,
        }
        if config.datasource_name is not None:
            request["dataSourceName"] = config.datasource_name
        if config.pipeline_config is not None:
            request["pipelineConfig"] = {"functions": list(config.pipeline_config.functions)}
        return request

    def create(self, config: AppsyncResolverConfig) -> ResourceState:
        self._client.create_resolver(**self._request(config))

        resource_id = APPSYNC_RESOLVER_ID.encode(config.api_id, config.type_name, config.field_name)
        logger.info("Created AppSync resolver", extra={"kind": self.kind, "resource_id": resource_id})

        state = self.read(resource_id)
        if state is None:
            raise ResourceNotFoundError(self.kind, resource_id)
        return state

    def read(self, resource_id: str) -> ResourceState | None:
        api_id, type_name, field_name = APPSYNC_RESOLVER_ID.decode(resource_id)

        try:
            response = self._client.get_resolver(
                apiId=api_id, typeName=type_name, fieldName=field_name
            )
        except ClientError as e:
            if is_not_found(e):
                self._log_gone(resource_id)
                return None
            raise

        resolver = response.get("resolver") or {}
        pipeline = resolver.get("pipelineConfig")
        functions = (pipeline or {}).get("functions")

        return ResourceState(
            kind=self.kind,
            id=resource_id,
            attributes={
                "api_id": api_id,
                "arn": resolver.get("resolverArn"),
                "type_name": resolver.get("typeName", type_name),
                "field_name": resolver.get("fieldName", field_name),
                "datasource_name": resolver.get("dataSourceName"),
                "request_mapping_template": resolver.get("requestMappingTemplate"),
                "response_mapping_template": resolver.get("responseMappingTemplate"),
                "kind": resolver.get("kind"),
                "pipeline_config": {"functions": list(functions)} if functions else None,
            },
        )

    def update(self, prior: ResourceState, config: AppsyncResolverConfig) -> ResourceState | None:
        try:
            self._client.update_resolver(**self._request(config))
        except ClientError as e:
            if is_not_found(e):
                self._log_gone(prior.id)
                return None
            raise
        return self.read(prior.id)

    def delete(self, resource_id: str) -> None:
        api_id, type_name, field_name = APPSYNC_RESOLVER_ID.decode(resource_id)
        try:
            self._client.delete_resolver(apiId=api_id, typeName=type_name, fieldName=field_name)
        except ClientError as e:
            if is_not_found(e):
                return
            raise
        logger.info("Deleted AppSync resolver", extra={"kind": self.kind, "resource_id": resource_id})


class AppsyncFunctionAdapter(ResourceAdapter):
    """Manages ``aws_appsync_function`` resources."""

    kind = "aws_appsync_function"
    config_model = AppsyncFunctionConfig
    force_new_fields = frozenset({"api_id"})

    def __init__(self, client: Any, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._client = client

    def _request(self, config: AppsyncFunctionConfig) -> dict[str, Any]:
        request: dict[str, Any] = {
            "apiId": config.api_id,
            "name": config.name,
            "dataSourceName": config.datasource_name,
            "requestMappingTemplate": config.request_mapping_template,
            "responseMappingTemplate": config.response_mapping_template,
            "functionVersion": config.function_version,
        }
        if config.description is not None:
            request["description"] = config.description
        return request

    def create(self, config: AppsyncFunctionConfig) -> ResourceState:
        response = self._client.create_function(**self._request(config))
        function_id = response["functionConfiguration"]["functionId"]

        resource_id = APPSYNC_FUNCTION_ID.encode(config.api_id, function_id)
        logger.info("Created AppSync function", extra={"kind": self.kind, "resource_id": resource_id})

        state = self.read(resource_id)
        if state is None:
            raise ResourceNotFoundError(self.kind, resource_id)
        return state

    def read(self, resource_id: str) -> ResourceState | None:
        api_id, function_id = APPSYNC_FUNCTION_ID.decode(resource_id)

        try:
            response = self._client.get_function(apiId=api_id, functionId=function_id)
        except ClientError as e:
            if is_not_found(e):
                self._log_gone(resource_id)
                return None
            raise

        function = response.get("functionConfiguration") or {}
        return ResourceState(
            kind=self.kind,
            id=resource_id,
            attributes={
                "api_id": api_id,
                "function_id": function.get("functionId", function_id),
                "arn": function.get("functionArn"),
                "name": function.get("name"),
                "description": function.get("description"),
                "datasource_name": function.get("dataSourceName"),
                "request_mapping_template": function.get("requestMappingTemplate"),
                "response_mapping_template": function.get("responseMappingTemplate"),
                "function_version": function.get("functionVersion"),
            },
        )

    def update(self, prior: ResourceState, config: AppsyncFunctionConfig) -> ResourceState | None:
        _, function_id = APPSYNC_FUNCTION_ID.decode(prior.id)
        try:
            self._client.update_function(functionId=function_id, **self._request(config))
        except ClientError as e:
            if is_not_found(e):
                self._log_gone(prior.id)
                return None
            raise
        return self.read(prior.id)

    def delete(self, resource_id: str) -> None:
        api_id, function_id = APPSYNC_FUNCTION_ID.decode(resource_id)
        try:
            self._client.delete_function(apiId=api_id, functionId=function_id)
        except ClientError as e:
            if is_not_found(e):
                return
            raise
        logger.info("Deleted AppSync function", extra={"kind": self.kind, "resource_id": resource_id})
