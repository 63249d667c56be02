"""paygate - credential and signing core for the payment provider client."""

__version__ = "0.1.0"

from .auth import SignType, compute_signature, encode_sign_params, generate_nonce, verify_signature
from .client import Client, TLSConfig
from .config import ClientConfig
from .credential_store import CredentialCache, ReadWriteLock
from .credentials import (
    BytesSource,
    CertSource,
    PathSource,
    TLSCredential,
    check_cert_sources,
    load_tls_credential,
)
from .errors import (
    ConfigurationError,
    CredentialFormatError,
    CredentialReadError,
    DecodeError,
    PayGateError,
    RemoteProtocolError,
    TransportError,
)
from .sandbox import (
    SANDBOX_SIGN_KEY_URL,
    SandboxKeyResponse,
    XMLTransport,
    compute_sandbox_signature,
    fetch_sandbox_sign_key,
)

__all__ = [
    # Client
    "Client",
    "ClientConfig",
    "TLSConfig",
    # Signing
    "SignType",
    "compute_signature",
    "encode_sign_params",
    "generate_nonce",
    "verify_signature",
    # Credentials
    "CertSource",
    "PathSource",
    "BytesSource",
    "TLSCredential",
    "CredentialCache",
    "ReadWriteLock",
    "check_cert_sources",
    "load_tls_credential",
    # Sandbox
    "SANDBOX_SIGN_KEY_URL",
    "SandboxKeyResponse",
    "XMLTransport",
    "compute_sandbox_signature",
    "fetch_sandbox_sign_key",
    # Errors
    "PayGateError",
    "ConfigurationError",
    "CredentialReadError",
    "CredentialFormatError",
    "TransportError",
    "DecodeError",
    "RemoteProtocolError",
]
