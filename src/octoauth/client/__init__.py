"""HTTP layer for octoauth.

Provides the request/response contract shared by both sign-in workflows:

    :class:`RequestDescriptor` -- mutable description of one outbound call.
    :class:`Client` -- session object that executes descriptors with
    :mod:`httpx` and classifies failures into typed exceptions.

Example::

    from octoauth.client import Client, HTTPMethod, RequestDescriptor

    client = Client.authenticated(user, token)
    me = await client.enqueue(RequestDescriptor(method=HTTPMethod.GET, path="user"))
"""

from octoauth.client.async_client import Client
from octoauth.client.request import (
    MIRAGE_PREVIEW_API_VERSION,
    OAUTH_SCOPES_HEADER,
    ONE_TIME_PASSWORD_HEADER,
    HTTPMethod,
    RequestDescriptor,
    basic_authorization_header,
    preview_accept_header,
)

__all__ = [
    "Client",
    "HTTPMethod",
    "RequestDescriptor",
    "MIRAGE_PREVIEW_API_VERSION",
    "OAUTH_SCOPES_HEADER",
    "ONE_TIME_PASSWORD_HEADER",
    "basic_authorization_header",
    "preview_accept_header",
]
