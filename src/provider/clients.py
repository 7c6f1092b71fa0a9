"""boto3 client construction and AWS error classification.

Credentials come from boto3's default provider chain; nothing here reads
or stores secrets.
"""

from __future__ import annotations

import logging
from typing import Any

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError

from .config import Config

logger = logging.getLogger(__name__)

# Error codes AWS services use for a missing object
NOT_FOUND_ERROR_CODES = frozenset({"NotFoundException", "ResourceNotFoundException"})


def error_code(error: ClientError) -> str:
    """Extract the AWS error code from a ClientError."""
    return error.response.get("Error", {}).get("Code", "")


def is_not_found(error: BaseException) -> bool:
    """Check whether an exception reports a missing remote object."""
    return isinstance(error, ClientError) and error_code(error) in NOT_FOUND_ERROR_CODES


class AwsClients:
    """Lazily created boto3 clients sharing one session and retry config.

    Clients are created on first use, so building the registry does not
    touch the network.
    """

    def __init__(self, config: Config, session: boto3.session.Session | None = None) -> None:
        self._session = session or boto3.session.Session(region_name=config.region)
        self._boto_config = BotoConfig(
            region_name=config.region,
            retries={"max_attempts": config.aws_max_attempts, "mode": "standard"},
        )
        self._clients: dict[str, Any] = {}

    def client(self, service_name: str) -> Any:
        """Return the (cached) client for a service."""
        if service_name not in self._clients:
            logger.debug("Creating AWS client", extra={"service": service_name})
            self._clients[service_name] = self._session.client(
                service_name, config=self._boto_config
            )
        return self._clients[service_name]
