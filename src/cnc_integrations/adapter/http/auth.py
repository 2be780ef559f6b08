"""Authentication header construction for the HTTP API adapter."""

import base64

from ...models.api import (
    ApiKeyCredentials,
    BasicAuthCredentials,
    BearerTokenCredentials,
    NoCredentials,
    OAuth2Credentials,
)

Credentials = (
    NoCredentials
    | ApiKeyCredentials
    | BearerTokenCredentials
    | BasicAuthCredentials
    | OAuth2Credentials
)


def auth_headers(credentials: Credentials | None) -> dict[str, str]:
    """Build the authentication headers for one request.

    Args:
        credentials: Credential variant supplied at connect

    Returns:
        dict: Headers to merge over default and per-request headers
    """
    if isinstance(credentials, ApiKeyCredentials):
        return {"X-API-Key": credentials.api_key}
    if isinstance(credentials, BearerTokenCredentials):
        return {"Authorization": f"Bearer {credentials.token}"}
    if isinstance(credentials, OAuth2Credentials):
        if credentials.access_token:
            return {"Authorization": f"Bearer {credentials.access_token}"}
        return {}
    if isinstance(credentials, BasicAuthCredentials):
        token = base64.b64encode(
            f"{credentials.username}:{credentials.password}".encode()
        ).decode("ascii")
        return {"Authorization": f"Basic {token}"}
    return {}
