"""Admin API access."""

from tripdesk.api.request import RequestDescriptor, RequestPipeline, build_url
from tripdesk.api.resources import ResourceClient, resource, resource_from_config
from tripdesk.api.result import ErrorCode, Outcome, RequestError, RequestResult

__all__ = [
    "ErrorCode",
    "Outcome",
    "RequestDescriptor",
    "RequestError",
    "RequestPipeline",
    "RequestResult",
    "ResourceClient",
    "build_url",
    "resource",
    "resource_from_config",
]
