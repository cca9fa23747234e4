import json
import warnings

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from kaeva.config import GoogleConfig, InferenceConfig, ServiceAccount, Settings
from tests.helpers import CLIENT_EMAIL, INFERENCE_URL, MODEL_URL, TOKEN_URI, FakeNetwork

# Suppress the starlette multipart deprecation warning
warnings.filterwarnings("ignore", category=PendingDeprecationWarning, module="starlette.formparsers")


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_pem(rsa_key) -> str:
    return rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


@pytest.fixture
def service_account_json(private_key_pem) -> str:
    return json.dumps(
        {
            "type": "service_account",
            "client_email": CLIENT_EMAIL,
            "private_key": private_key_pem,
            "token_uri": TOKEN_URI,
        }
    )


@pytest.fixture
def service_account(service_account_json) -> ServiceAccount:
    return ServiceAccount.from_json(service_account_json)


@pytest.fixture
def settings(service_account_json) -> Settings:
    """Settings pointing every outbound call at test hosts."""
    return Settings(
        google=GoogleConfig(service_account_json=service_account_json, endpoint=MODEL_URL),
        inference=InferenceConfig(base_url=INFERENCE_URL),
    )


@pytest.fixture
def network() -> FakeNetwork:
    """A FakeNetwork with a working token endpoint."""
    fake = FakeNetwork()
    fake.add("POST", TOKEN_URI, json_body={"access_token": "test-token", "expires_in": 3600})
    return fake
