"""
Test mocks for the paygate test suite.

Available Mocks:
- SandboxEndpointMock: Mock for the provider's sandbox sign-key endpoint
- SandboxEndpointMockConfig: Configuration for the sandbox mock
- certificates: Test certificate and PKCS#12 generation
"""

from .certificates import CertificateBundle, make_certificate, make_pkcs12
from .sandbox_mock import SandboxEndpointMock, SandboxEndpointMockConfig

# Test merchant account
MCH_ID = "1230000109"
API_KEY = "192006250b4c09247ec02edce69f6a2d"

__all__ = [
    "MCH_ID",
    "API_KEY",
    "SandboxEndpointMock",
    "SandboxEndpointMockConfig",
    "CertificateBundle",
    "make_certificate",
    "make_pkcs12",
]
