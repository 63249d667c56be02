"""
Merchant TLS credentials.

The provider authenticates merchants on its secured endpoints (refunds,
fund transfers, sandbox operations) with a client certificate. The merchant
platform hands out that certificate in two encodings:

- ``apiclient_cert.pem`` + ``apiclient_key.pem``: a PEM certificate and key
- ``apiclient_cert.p12``: a PKCS#12 archive protected by the merchant ID

Either may be supplied as a file path or as raw bytes. This module validates
the combination, reads and parses the material, and produces an immutable
``TLSCredential``.

Usage:
    from paygate.credentials import CertSource, load_tls_credential

    credential = load_tls_credential(
        mch_id="1230000109",
        pkcs12=CertSource.from_path("/etc/paygate/apiclient_cert.p12"),
    )
    context = credential.to_ssl_context()
"""

import abc
import datetime
import logging
import os
import ssl
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes
from cryptography.hazmat.primitives.serialization import pkcs12 as pkcs12_format

from .errors import ConfigurationError, CredentialFormatError, CredentialReadError
from .tracing import traced

logger = logging.getLogger(__name__)


class CertSource(abc.ABC):
    """Certificate material given either as a file path or as raw bytes."""

    @staticmethod
    def from_path(path: Union[str, os.PathLike], name: str = "path") -> "PathSource":
        """
        Raises:
            ConfigurationError: If ``path`` is not a str or str-valued PathLike
        """
        if isinstance(path, os.PathLike):
            path = os.fspath(path)
        if not isinstance(path, str):
            raise ConfigurationError(f"{name} has unsupported type {type(path).__name__}")
        return PathSource(path)

    @staticmethod
    def from_bytes(data: Union[bytes, bytearray], name: str = "data") -> "BytesSource":
        """
        Raises:
            ConfigurationError: If ``data`` is not bytes-like
        """
        if not isinstance(data, (bytes, bytearray)):
            raise ConfigurationError(f"{name} has unsupported type {type(data).__name__}")
        return BytesSource(bytes(data))

    @abc.abstractmethod
    def is_empty(self) -> bool:
        ...

    @abc.abstractmethod
    def read(self) -> bytes:
        ...


@dataclass(frozen=True)
class PathSource(CertSource):
    """Material stored in a file on disk."""
    path: str

    def is_empty(self) -> bool:
        return self.path == ""

    def read(self) -> bytes:
        try:
            return Path(self.path).read_bytes()
        except OSError as e:
            raise CredentialReadError(self.path, f"failed to read {self.path}: {e}") from e

    def __str__(self) -> str:
        return self.path


@dataclass(frozen=True)
class BytesSource(CertSource):
    """Material already loaded in memory."""
    data: bytes = field(repr=False)

    def is_empty(self) -> bool:
        return len(self.data) == 0

    def read(self) -> bytes:
        return self.data

    def __str__(self) -> str:
        return f"<{len(self.data)} bytes>"


def _check_source(name: str, source: object) -> None:
    if not isinstance(source, CertSource):
        raise ConfigurationError(f"{name} has unsupported type {type(source).__name__}")
    if source.is_empty():
        raise ConfigurationError(f"{name} is empty")


def check_cert_sources(
    cert: Optional[CertSource],
    key: Optional[CertSource],
    pkcs12: Optional[CertSource],
) -> None:
    """
    Validate a combination of certificate inputs.

    Valid combinations are: nothing at all, ``cert`` and ``key`` together, or
    ``pkcs12`` alone.

    Raises:
        ConfigurationError: If the combination is invalid or an input is empty
    """
    if cert is None and key is None and pkcs12 is None:
        return
    if pkcs12 is not None:
        if cert is not None or key is not None:
            raise ConfigurationError("pkcs12 cannot be combined with cert or key")
        _check_source("pkcs12", pkcs12)
        return
    if cert is None or key is None:
        raise ConfigurationError("cert and key must both be provided or both be omitted")
    _check_source("cert", cert)
    _check_source("key", key)


@dataclass(frozen=True)
class TLSCredential:
    """
    A certificate and private key bound to one merchant.

    Instances are never modified; re-registration replaces them wholesale.

    Attributes:
        mch_id: Merchant the credential belongs to
        certificate: Leaf certificate presented during the handshake
        private_key: Private key matching ``certificate``
        chain: Intermediate certificates following the leaf
        cert_pem: PEM encoding of the leaf followed by the chain
        key_pem: Unencrypted PKCS#8 PEM encoding of the private key
    """
    mch_id: str
    certificate: x509.Certificate
    private_key: PrivateKeyTypes = field(repr=False)
    chain: tuple[x509.Certificate, ...] = ()
    cert_pem: bytes = field(default=b"", repr=False)
    key_pem: bytes = field(default=b"", repr=False)

    @property
    def fingerprint(self) -> str:
        """SHA-256 fingerprint of the leaf certificate, lowercase hex."""
        return self.certificate.fingerprint(hashes.SHA256()).hex()

    @property
    def serial_number(self) -> int:
        return self.certificate.serial_number

    @property
    def not_valid_after(self) -> datetime.datetime:
        return self.certificate.not_valid_after_utc

    def to_ssl_context(self, verify: bool = True) -> ssl.SSLContext:
        """
        Build a client-side SSL context presenting this credential.

        Args:
            verify: Verify the server certificate against the system trust store

        Returns:
            Configured ``ssl.SSLContext``
        """
        context = ssl.create_default_context(ssl.Purpose.SERVER_AUTH)
        if not verify:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE

        # SSLContext only loads certificate chains from files
        with tempfile.TemporaryDirectory(prefix="paygate-") as tmpdir:
            cert_file = os.path.join(tmpdir, "cert.pem")
            key_file = os.path.join(tmpdir, "key.pem")
            with open(cert_file, "wb") as f:
                f.write(self.cert_pem)
            with open(os.open(key_file, os.O_WRONLY | os.O_CREAT, 0o600), "wb") as f:
                f.write(self.key_pem)
            context.load_cert_chain(cert_file, key_file)
        return context


def _public_key_der(key) -> bytes:
    return key.public_bytes(
        serialization.Encoding.DER,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def parse_pem_pair(mch_id: str, cert_pem: bytes, key_pem: bytes) -> TLSCredential:
    """
    Parse a PEM certificate (optionally followed by its chain) and private key.

    Raises:
        CredentialFormatError: If either block is malformed or they do not match
    """
    try:
        certificates = x509.load_pem_x509_certificates(cert_pem)
    except ValueError as e:
        raise CredentialFormatError(f"invalid PEM certificate: {e}") from e
    try:
        private_key = serialization.load_pem_private_key(key_pem, password=None)
    except (ValueError, TypeError) as e:
        raise CredentialFormatError(f"invalid PEM private key: {e}") from e

    leaf = certificates[0]
    if _public_key_der(leaf.public_key()) != _public_key_der(private_key.public_key()):
        raise CredentialFormatError("private key does not match certificate public key")

    normalized_cert = b"".join(c.public_bytes(serialization.Encoding.PEM) for c in certificates)
    normalized_key = private_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )
    return TLSCredential(
        mch_id=mch_id,
        certificate=leaf,
        private_key=private_key,
        chain=tuple(certificates[1:]),
        cert_pem=normalized_cert,
        key_pem=normalized_key,
    )


def pkcs12_to_pem(pfx_data: bytes, passphrase: str) -> tuple[bytes, bytes]:
    """
    Decrypt a PKCS#12 archive into separate certificate and key PEM blocks.

    Returns:
        Tuple of (certificate chain PEM, private key PEM)

    Raises:
        CredentialFormatError: If decryption fails or the archive is incomplete
    """
    try:
        private_key, certificate, additional = pkcs12_format.load_key_and_certificates(
            pfx_data, passphrase.encode("utf-8")
        )
    except ValueError as e:
        raise CredentialFormatError(f"failed to decrypt PKCS#12 archive: {e}") from e
    if private_key is None:
        raise CredentialFormatError("PKCS#12 archive contains no private key")
    if certificate is None:
        raise CredentialFormatError("PKCS#12 archive contains no certificate")

    cert_pem = b"".join(
        c.public_bytes(serialization.Encoding.PEM) for c in [certificate, *additional]
    )
    key_pem = private_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )
    return cert_pem, key_pem


@traced(name="credentials.load")
def load_tls_credential(
    mch_id: str,
    cert: Optional[CertSource] = None,
    key: Optional[CertSource] = None,
    pkcs12: Optional[CertSource] = None,
) -> Optional[TLSCredential]:
    """
    Load a TLS credential from a PEM pair or a PKCS#12 archive.

    Args:
        mch_id: Merchant ID, used as the PKCS#12 passphrase
        cert: PEM certificate source
        key: PEM private key source
        pkcs12: PKCS#12 archive source

    Returns:
        The parsed credential, or None when no input was given

    Raises:
        ConfigurationError: If the input combination is invalid
        CredentialReadError: If a file cannot be read
        CredentialFormatError: If the material cannot be parsed
    """
    check_cert_sources(cert, key, pkcs12)

    if pkcs12 is not None:
        cert_pem, key_pem = pkcs12_to_pem(pkcs12.read(), mch_id)
        source = f"pkcs12 {pkcs12}"
    elif cert is not None and key is not None:
        cert_pem, key_pem = cert.read(), key.read()
        source = f"cert {cert}, key {key}"
    else:
        return None

    credential = parse_pem_pair(mch_id, cert_pem, key_pem)
    logger.debug("Loaded credential %s from %s", credential.fingerprint, source)
    return credential
