"""AWS API mocks for adapter and reconciler tests.

In-memory stand-ins for the boto3 ``apigatewayv2``, ``mq`` and ``appsync``
clients. They keep state between calls, record every call, and raise real
``botocore.exceptions.ClientError`` instances (NotFoundException for missing
objects), so adapters are exercised exactly as against AWS.

Usage:
    from aws_mock import MockApiGatewayV2Client

    client = MockApiGatewayV2Client(create_statuses=["PENDING", "AVAILABLE"])
    adapter = VpcLinkAdapter(client, region="us-east-1", timeouts=FAST)
    state = adapter.create(config)
    assert client.call_names().count("get_vpc_link") >= 2
"""

from .apigatewayv2 import MockApiGatewayV2Client
from .appsync import MockAppSyncClient
from .base import MockClient, client_error
from .mq import DEFAULT_ACTIVEMQ_DATA, MockMqClient

__all__ = [
    "DEFAULT_ACTIVEMQ_DATA",
    "MockApiGatewayV2Client",
    "MockAppSyncClient",
    "MockClient",
    "MockMqClient",
    "client_error",
]
