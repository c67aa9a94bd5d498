"""Token exchange with the telety.io API.

The user token (a GUID) comes from the ``--auth-token`` flag, the
``TELETY_TOKEN`` environment variable, or a masked prompt, in that order.
It is exchanged for a bearer token at ``<scheme>://<host>/auth/token``.
"""

from __future__ import annotations

import logging
from urllib.parse import urlsplit

import httpx

from telety.constants import HEADERS, REG
from telety.domain.models import AuthResult
from telety.errors import AuthError, InvalidTokenError
from telety.prompt.line import SecurePrompt
from telety.ui import GREEN, RED, YELLOW, ConsoleWriter

logger = logging.getLogger(__name__)


async def resolve_token(
    flag_token: str | None,
    env_token: str | None,
    ui: ConsoleWriter,
    prompt: SecurePrompt | None = None,
) -> str:
    """Pick the user token from flag, environment or a masked prompt.

    Raises:
        InvalidTokenError: If the token is not a GUID.
    """
    if flag_token:
        ui.output(
            (RED, "telety.warn:"),
            "Use",
            (YELLOW, "TELETY_TOKEN"),
            "environment variable for improved security",
        )
        token = flag_token
    elif env_token:
        token = env_token
    else:
        prompt = prompt or SecurePrompt()
        token = await prompt.question("Enter auth token: ")
    token = token.strip()
    if not REG.GUID.match(token):
        raise InvalidTokenError("Invalid auth token")
    return token


async def authenticate(
    api_url: str,
    token: str,
    timeout: float = 10.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AuthResult:
    """Exchange a user token for a bearer token.

    The bearer comes back in the ``X-Auth-Token`` response header. The API
    endpoint is taken from the JSON body when it names one, otherwise it is
    the scheme and host of ``api_url``.

    Raises:
        AuthError: If the exchange fails.
    """
    parts = urlsplit(api_url)
    base = f"{parts.scheme}://{parts.netloc}"
    token_url = f"{base}/auth/token"
    logger.info("Requesting bearer token from %s", token_url)
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            resp = await client.post(token_url, headers={HEADERS.XAUTH: token})
            resp.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise AuthError(
            f"{e.response.status_code}: {e.response.reason_phrase}"
        ) from e
    except httpx.HTTPError as e:
        raise AuthError(f"Token request failed: {e}") from e

    bearer = resp.headers.get(HEADERS.XAUTH)
    if not bearer:
        raise AuthError(f"No {HEADERS.XAUTH} header in token response")

    endpoint = base
    if "application/json" in resp.headers.get("content-type", ""):
        body = resp.json()
        if isinstance(body, dict) and body.get("endpoint"):
            endpoint = str(body["endpoint"])
    return AuthResult(token=bearer, endpoint=endpoint.rstrip("/"))


async def login(
    api_url: str,
    flag_token: str | None,
    env_token: str | None,
    ui: ConsoleWriter,
    timeout: float = 10.0,
) -> AuthResult:
    """Resolve the user token and exchange it, reporting progress."""
    token = await resolve_token(flag_token, env_token, ui)
    try:
        result = await authenticate(api_url, token, timeout=timeout)
    except AuthError:
        ui.status("connecting", (RED, "✘"))
        raise
    ui.status("connecting", (GREEN, "✔"))
    return result
