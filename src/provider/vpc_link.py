"""API Gateway v2 VPC link adapter.

VPC links are created asynchronously: the create call returns while the
link is still PENDING, and the ENIs behind it take minutes to provision.
Create and update wait for AVAILABLE; delete waits until the link is gone.
"""

from __future__ import annotations

import logging
from typing import Any

from botocore.exceptions import ClientError

from .clients import is_not_found
from .errors import ResourceNotFoundError
from .models import VpcLinkConfig
from .resource import ResourceAdapter, ResourceState
from .tags import ignore_system_tags, reconcile_tags
from .waiter import WaitSpec, wait_for

logger = logging.getLogger(__name__)

# VpcLinkStatus values
STATUS_PENDING = "PENDING"
STATUS_AVAILABLE = "AVAILABLE"
STATUS_DELETING = "DELETING"
STATUS_FAILED = "FAILED"
STATUS_INACTIVE = "INACTIVE"

# Deletion polls faster, links usually disappear within seconds
DELETE_POLL_INTERVAL_SECONDS = 1.0


class VpcLinkAdapter(ResourceAdapter):
    """Manages ``aws_apigatewayv2_vpc_link`` resources."""

    kind = "aws_apigatewayv2_vpc_link"
    config_model = VpcLinkConfig
    force_new_fields = frozenset({"subnet_ids", "security_group_ids"})

    def __init__(self, client: Any, *, region: str, partition: str = "aws", **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._client = client
        self._region = region
        self._partition = partition

    def arn(self, vpc_link_id: str) -> str:
        return f"arn:{self._partition}:apigateway:{self._region}::/vpclinks/{vpc_link_id}"

    def create(self, config: VpcLinkConfig) -> ResourceState:
        request: dict[str, Any] = {
            "Name": config.name,
            "SubnetIds": config.subnet_ids,
            "Tags": config.tags,
        }
        if config.security_group_ids:
            request["SecurityGroupIds"] = config.security_group_ids

        response = self._client.create_vpc_link(**request)
        vpc_link_id = response["VpcLinkId"]
        logger.info("Created VPC link", extra={"kind": self.kind, "resource_id": vpc_link_id})

        self._wait_available(vpc_link_id)

        state = self.read(vpc_link_id)
        if state is None:
            raise ResourceNotFoundError(self.kind, vpc_link_id)
        return state

    def read(self, resource_id: str) -> ResourceState | None:
        try:
            response = self._client.get_vpc_link(VpcLinkId=resource_id)
        except ClientError as e:
            if is_not_found(e):
                self._log_gone(resource_id)
                return None
            raise

        return ResourceState(
            kind=self.kind,
            id=resource_id,
            attributes={
                "arn": self.arn(resource_id),
                "name": response.get("Name"),
                "subnet_ids": sorted(response.get("SubnetIds") or []),
                "security_group_ids": sorted(response.get("SecurityGroupIds") or []),
                "tags": ignore_system_tags(response.get("Tags")),
                "status": response.get("VpcLinkStatus"),
            },
        )

    def update(self, prior: ResourceState, config: VpcLinkConfig) -> ResourceState | None:
        vpc_link_id = prior.id

        try:
            if prior.attributes.get("name") != config.name:
                self._client.update_vpc_link(VpcLinkId=vpc_link_id, Name=config.name)

            arn = self.arn(vpc_link_id)
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
                self._log_gone(vpc_link_id)
                return None
            raise

        self._wait_available(vpc_link_id)
        return self.read(vpc_link_id)

    def delete(self, resource_id: str) -> None:
        try:
            self._client.delete_vpc_link(VpcLinkId=resource_id)
        except ClientError as e:
            if is_not_found(e):
                return
            raise

        wait_for(
            lambda: self._status(resource_id),
            WaitSpec(
                pending=frozenset({STATUS_PENDING, STATUS_AVAILABLE, STATUS_DELETING}),
                target=frozenset(),
                failure=frozenset({STATUS_FAILED}),
                timeout_seconds=self._timeouts.delete_seconds,
                poll_interval_seconds=min(
                    DELETE_POLL_INTERVAL_SECONDS, self._timeouts.poll_interval_seconds
                ),
                not_found_is_success=True,
            ),
            cancel_event=self._cancel_event,
            description=f"VPC link {resource_id} deletion",
        )
        logger.info("Deleted VPC link", extra={"kind": self.kind, "resource_id": resource_id})

    def _status(self, vpc_link_id: str) -> str:
        try:
            response = self._client.get_vpc_link(VpcLinkId=vpc_link_id)
        except ClientError as e:
            if is_not_found(e):
                raise ResourceNotFoundError(self.kind, vpc_link_id) from e
            raise
        return response.get("VpcLinkStatus", "")

    def _wait_available(self, vpc_link_id: str) -> None:
        wait_for(
            lambda: self._status(vpc_link_id),
            WaitSpec(
                pending=frozenset({STATUS_PENDING}),
                target=frozenset({STATUS_AVAILABLE}),
                failure=frozenset({STATUS_FAILED, STATUS_INACTIVE}),
                timeout_seconds=self._timeouts.create_seconds,
                poll_interval_seconds=self._timeouts.poll_interval_seconds,
            ),
            cancel_event=self._cancel_event,
            description=f"VPC link {vpc_link_id} to become {STATUS_AVAILABLE}",
        )
