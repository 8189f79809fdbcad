"""OAuth token refresh for the SoundCloud API.

Refresh Flow:
    1. POST ``grant_type=refresh_token`` with client credentials to the token URL
    2. Decode the new access/refresh pair and ``expires_in`` hint
    3. Return a new Credential (the caller decides whether to adopt it)

Security Notes:
    - Neither the request nor the response body is ever logged or placed in an
      exception message; failures only carry the HTTP status.
    - Some refresh responses omit a rotated refresh token; the previous one is
      kept in that case.
"""

import logging

import httpx

from .exceptions import AuthError
from .models import Credential, SoundCloudConfig

logger = logging.getLogger(__name__)


async def refresh_credential(
    http: httpx.AsyncClient, config: SoundCloudConfig, credential: Credential
) -> Credential:
    """Exchange a refresh token for a new credential.

    Args:
        http: HTTP client used for the token call
        config: Client configuration with client ID/secret and token URL
        credential: Credential whose refresh token is used

    Returns:
        New Credential with the refreshed tokens and expiry hint

    Raises:
        AuthError: If the refresh token is missing, the call fails, or the
            response is not a usable token payload
    """
    if not credential.refresh_token:
        raise AuthError("Token refresh failed: no refresh token available", status_code=401)

    form = {
        "grant_type": "refresh_token",
        "client_id": config.client_id,
        "client_secret": config.client_secret,
        "refresh_token": credential.refresh_token,
    }

    logger.debug("Refreshing access token")
    try:
        response = await http.post(
            config.token_url,
            data=form,
            headers={"Accept": "application/json"},
        )
    except httpx.HTTPError as e:
        logger.warning(f"Token refresh transport failure: {type(e).__name__}")
        raise AuthError("Token refresh failed: token endpoint unreachable") from e

    if response.status_code != 200:
        logger.warning(f"Token refresh rejected with status {response.status_code}")
        raise AuthError(
            f"Token refresh failed: {response.status_code}", status_code=response.status_code
        )

    try:
        data = response.json()
        if not isinstance(data, dict):
            raise TypeError(f"expected a JSON object, got {type(data).__name__}")
        refreshed = Credential.from_token_response(
            data, fallback_refresh_token=credential.refresh_token
        )
    except (ValueError, KeyError, TypeError) as e:
        logger.warning("Token refresh returned an unusable payload")
        raise AuthError("Token refresh failed: malformed token response") from e

    logger.info("Access token refreshed")
    return refreshed
