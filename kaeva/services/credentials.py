"""Service-account token exchange (OAuth 2.0 JWT bearer grant).

A self-signed RS256 assertion is posted to the account's token endpoint and
traded for a short-lived access token. Any failure here is fatal to the job.
"""

import base64
import json
import time

import httpx
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from kaeva.config import ServiceAccount
from kaeva.utils.exceptions import CredentialError
from kaeva.utils.logging import get_component_logger

logger = get_component_logger("credentials")

JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"
ASSERTION_LIFETIME = 3600


def b64url(data: bytes) -> str:
    """Base64url without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _load_private_key(pem: str) -> rsa.RSAPrivateKey:
    try:
        key = serialization.load_pem_private_key(pem.encode("utf-8"), password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise CredentialError(f"Service account private key could not be loaded: {e}") from e
    if not isinstance(key, rsa.RSAPrivateKey):
        raise CredentialError("Service account private key is not an RSA key")
    return key


def build_assertion(account: ServiceAccount, scope: str, issued_at: int | None = None) -> str:
    """Build and sign the JWT assertion for ``account``.

    Args:
        account: Parsed service account
        scope: OAuth scope to request
        issued_at: Unix time to use as ``iat``; defaults to now

    Returns:
        The compact ``header.payload.signature`` token
    """
    iat = int(time.time()) if issued_at is None else issued_at
    header = {"alg": "RS256", "typ": "JWT"}
    payload = {
        "iss": account.client_email,
        "scope": scope,
        "aud": account.token_uri,
        "iat": iat,
        "exp": iat + ASSERTION_LIFETIME,
    }
    signing_input = ".".join(
        b64url(json.dumps(part, separators=(",", ":")).encode("utf-8")) for part in (header, payload)
    )
    key = _load_private_key(account.private_key)
    signature = key.sign(signing_input.encode("ascii"), padding.PKCS1v15(), hashes.SHA256())
    return f"{signing_input}.{b64url(signature)}"


async def fetch_access_token(
    client: httpx.AsyncClient, account: ServiceAccount | None, scope: str
) -> str:
    """Exchange a signed assertion for a bearer access token.

    Raises:
        CredentialError: If credentials are missing, the key cannot sign, or the
            token endpoint rejects the assertion
    """
    if account is None:
        raise CredentialError("Service account credentials are not configured")

    assertion = build_assertion(account, scope)
    try:
        response = await client.post(
            account.token_uri,
            data={"grant_type": JWT_BEARER_GRANT, "assertion": assertion},
        )
    except httpx.HTTPError as e:
        raise CredentialError(f"Token endpoint unreachable: {e}") from e

    if not response.is_success:
        logger.error("Token exchange rejected with status %s", response.status_code)
        raise CredentialError(
            f"Token exchange failed ({response.status_code})", status=response.status_code
        )

    try:
        token = response.json().get("access_token")
    except (ValueError, AttributeError) as e:
        raise CredentialError("Token endpoint returned malformed JSON") from e
    if not isinstance(token, str) or not token:
        raise CredentialError("Token endpoint response has no access_token")

    logger.debug("Obtained access token for %s", account.client_email)
    return token
