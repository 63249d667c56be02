"""
Pytest configuration and fixtures for paygate tests.

This module provides shared fixtures: generated merchant certificates in
every supported encoding, and a fake sandbox sign-key endpoint.

Usage:
    def test_something(merchant_cert, cert_files):
        cert_path, key_path = cert_files
        ...

    def test_sandbox(sandbox_mock):
        with sandbox_mock.transport() as transport:
            ...
"""

import pytest

from paygate import Client
from tests.mocks import (
    API_KEY,
    MCH_ID,
    CertificateBundle,
    SandboxEndpointMock,
    SandboxEndpointMockConfig,
    make_certificate,
    make_pkcs12,
)


# ============================================================================
# Certificate Fixtures
# ============================================================================

@pytest.fixture(scope="session")
def merchant_cert() -> CertificateBundle:
    """Self-signed certificate for the test merchant."""
    return make_certificate(common_name=MCH_ID)


@pytest.fixture(scope="session")
def other_cert() -> CertificateBundle:
    """A second, unrelated certificate."""
    return make_certificate(common_name="1900000000")


@pytest.fixture(scope="session")
def merchant_pkcs12(merchant_cert: CertificateBundle) -> bytes:
    """PKCS#12 archive of the merchant certificate, protected by the merchant ID."""
    return make_pkcs12(merchant_cert, password=MCH_ID)


@pytest.fixture
def cert_files(tmp_path, merchant_cert: CertificateBundle):
    """
    Write the merchant PEM pair to disk.

    Returns:
        Tuple of (cert path, key path)
    """
    cert_path = tmp_path / "apiclient_cert.pem"
    key_path = tmp_path / "apiclient_key.pem"
    cert_path.write_bytes(merchant_cert.cert_pem)
    key_path.write_bytes(merchant_cert.key_pem)
    return str(cert_path), str(key_path)


@pytest.fixture
def pkcs12_file(tmp_path, merchant_pkcs12: bytes) -> str:
    """Write the merchant PKCS#12 archive to disk and return its path."""
    path = tmp_path / "apiclient_cert.p12"
    path.write_bytes(merchant_pkcs12)
    return str(path)


# ============================================================================
# Sandbox Endpoint Fixtures
# ============================================================================

@pytest.fixture
def sandbox_mock_config() -> SandboxEndpointMockConfig:
    """Default sandbox mock configuration; override to customize."""
    return SandboxEndpointMockConfig()


@pytest.fixture
def sandbox_mock(sandbox_mock_config: SandboxEndpointMockConfig) -> SandboxEndpointMock:
    """Fake sandbox sign-key endpoint."""
    return SandboxEndpointMock(config=sandbox_mock_config)


# ============================================================================
# Client Fixtures
# ============================================================================

@pytest.fixture
def client(sandbox_mock: SandboxEndpointMock):
    """Production client for the test merchant."""
    with Client(mch_id=MCH_ID, api_key=API_KEY, transport=sandbox_mock.transport()) as c:
        yield c


@pytest.fixture
def sandbox_client(sandbox_mock: SandboxEndpointMock):
    """Sandbox client for the test merchant, wired to the sandbox mock."""
    with Client(
        mch_id=MCH_ID,
        api_key=API_KEY,
        is_prod=False,
        transport=sandbox_mock.transport(),
    ) as c:
        yield c
