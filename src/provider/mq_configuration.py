"""Amazon MQ configuration adapter.

The configuration body is an XML document sent base64-encoded. Every update
creates a new revision; reads fetch the latest revision's data. AWS
reformats the XML it stores, so ``data`` is compared structurally.

The MQ API has no call to delete a configuration. Delete only forgets it.
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Any

from botocore.exceptions import ClientError

from .clients import is_not_found
from .diff_suppress import StructuralFormat
from .errors import AdapterError, ResourceNotFoundError
from .models import MqConfigurationConfig
from .resource import ResourceAdapter, ResourceState
from .tags import ignore_system_tags, reconcile_tags

logger = logging.getLogger(__name__)


class MqConfigurationAdapter(ResourceAdapter):
    """Manages ``aws_mq_configuration`` resources."""

    kind = "aws_mq_configuration"
    config_model = MqConfigurationConfig
    force_new_fields = frozenset({"name", "engine_type", "engine_version"})
    suppressed_fields = {"data": StructuralFormat.XML}

    def __init__(self, client: Any, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._client = client

    def create(self, config: MqConfigurationConfig) -> ResourceState:
        request: dict[str, Any] = {
            "EngineType": config.engine_type,
            "EngineVersion": config.engine_version,
            "Name": config.name,
        }
        if config.tags:
            request["Tags"] = config.tags

        logger.info(
            "Creating MQ configuration",
            extra={"kind": self.kind, "config_name": config.name, "engine_type": config.engine_type},
        )
        response = self._client.create_configuration(**request)
        configuration_id = response["Id"]

        # The create call takes no data, the first revision is pushed by an update
        self._push_revision(configuration_id, config)

        state = self.read(configuration_id)
        if state is None:
            raise ResourceNotFoundError(self.kind, configuration_id)
        return state

    def read(self, resource_id: str) -> ResourceState | None:
        try:
            configuration = self._client.describe_configuration(ConfigurationId=resource_id)
            latest = configuration.get("LatestRevision") or {}
            revision = latest.get("Revision")

            revision_response = self._client.describe_configuration_revision(
                ConfigurationId=resource_id,
                ConfigurationRevision=str(revision),
            )
            arn = configuration.get("Arn")
            tags_response = self._client.list_tags(ResourceArn=arn)
        except ClientError as e:
            if is_not_found(e):
                self._log_gone(resource_id)
                return None
            raise

        try:
            data = base64.b64decode(revision_response.get("Data", ""), validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise AdapterError(
                f"MQ configuration {resource_id} revision {revision} has undecodable data: {e}"
            ) from e

        return ResourceState(
            kind=self.kind,
            id=resource_id,
            attributes={
                "arn": arn,
                "name": configuration.get("Name"),
                "engine_type": configuration.get("EngineType"),
                "engine_version": configuration.get("EngineVersion"),
                "description": latest.get("Description"),
                "latest_revision": revision,
                "data": data,
                "tags": ignore_system_tags(tags_response.get("Tags")),
            },
        )

    def update(self, prior: ResourceState, config: MqConfigurationConfig) -> ResourceState | None:
        configuration_id = prior.id

        try:
            changed = self.diff(prior, config)
            if "data" in changed or "description" in changed:
                self._push_revision(configuration_id, config)

            arn = prior.attributes.get("arn")
            reconcile_tags(
                prior.attributes.get("tags"),
                config.tags,
                add=lambda tags: self._client.create_tags(ResourceArn=arn, Tags=tags),
                remove=lambda keys: self._client.delete_tags(ResourceArn=arn, TagKeys=sorted(keys)),
            )
        except ClientError as e:
            if is_not_found(e):
                self._log_gone(configuration_id)
                return None
            raise

        return self.read(configuration_id)

    def delete(self, resource_id: str) -> None:
        logger.warning(
            "MQ configurations cannot be deleted, removing from state only",
            extra={"kind": self.kind, "resource_id": resource_id},
        )

    def _push_revision(self, configuration_id: str, config: MqConfigurationConfig) -> None:
        request: dict[str, Any] = {
            "ConfigurationId": configuration_id,
            "Data": base64.b64encode(config.data.encode("utf-8")).decode("ascii"),
        }
        if config.description:
            request["Description"] = config.description

        logger.info(
            "Updating MQ configuration",
            extra={"kind": self.kind, "resource_id": configuration_id},
        )
        self._client.update_configuration(**request)
