"""
Merchant client: credentials and request signatures.

This module provides the client object that owns a merchant's identity,
its TLS credential and its signing configuration. The rest of the SDK asks
it for a TLS configuration when calling certificate-protected endpoints and
for a signature on every request.

Usage:
    from paygate import Client, SignType

    client = Client(mch_id="1230000109", api_key="...", is_prod=True)
    client.add_cert_file_path(
        "/etc/paygate/apiclient_cert.pem",
        "/etc/paygate/apiclient_key.pem",
        None,
    )

    tls = client.get_tls_config()
    with tls.create_http_client() as http:
        ...

    params["sign"] = client.sign(params)
"""

import logging
import os
import ssl
import threading
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

import httpx

from .auth import SignType, compute_signature
from .config import ClientConfig
from .credential_store import CredentialCache
from .credentials import CertSource, TLSCredential, load_tls_credential
from .errors import ConfigurationError
from .sandbox import XMLTransport, compute_sandbox_signature
from .tracing import add_signing_span_attributes, get_tracer

logger = logging.getLogger(__name__)

PathArg = Optional[Union[str, os.PathLike, bytes, bytearray]]
BytesArg = Optional[Union[bytes, bytearray]]


@dataclass(frozen=True)
class TLSConfig:
    """TLS settings for certificate-protected provider endpoints."""
    credential: TLSCredential
    verify_server: bool = True

    def ssl_context(self) -> ssl.SSLContext:
        return self.credential.to_ssl_context(verify=self.verify_server)

    def create_http_client(self, timeout: float = 10.0, **kwargs: Any) -> httpx.Client:
        """Create an ``httpx.Client`` that presents the client certificate."""
        return httpx.Client(verify=self.ssl_context(), timeout=timeout, **kwargs)


def _path_source(name: str, value: PathArg) -> Optional[CertSource]:
    # Raw bytes are accepted here as already loaded content
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        return CertSource.from_bytes(value, name)
    return CertSource.from_path(value, name)


def _bytes_source(name: str, value: BytesArg) -> Optional[CertSource]:
    return None if value is None else CertSource.from_bytes(value, name)


class Client:
    """
    Payment provider client core for one merchant account.

    Each instance owns its credential cache; clients for different merchants
    in the same process never share state.

    Attributes:
        api_key: Production API key
        is_prod: False to sign requests for the sandbox environment
        sign_type: Default signature algorithm
        verify_server: Verify the provider's certificate on TLS connections
    """

    def __init__(
        self,
        mch_id: str,
        api_key: str,
        is_prod: bool = True,
        sign_type: Union[SignType, str] = SignType.MD5,
        transport: Optional[XMLTransport] = None,
        verify_server: bool = True,
    ):
        """
        Initialize the client.

        Args:
            mch_id: Merchant ID, also the PKCS#12 passphrase
            api_key: Production API key
            is_prod: Production (True) or sandbox (False) environment
            sign_type: Default signature algorithm
            transport: Transport for the sandbox key exchange (created on demand)
            verify_server: Verify the provider's certificate on TLS connections
        """
        if not mch_id:
            raise ConfigurationError("mch_id is required")
        if not api_key:
            raise ConfigurationError("api_key is required")

        self._mch_id = mch_id
        self.api_key = api_key
        self.is_prod = is_prod
        self.sign_type = SignType.parse(sign_type)
        self.verify_server = verify_server
        self._credentials = CredentialCache()
        self._owns_transport = transport is None
        self._transport = transport
        self._transport_lock = threading.Lock()

    @classmethod
    def from_config(cls, config: ClientConfig, transport: Optional[XMLTransport] = None) -> "Client":
        """
        Build a client from configuration, registering any certificate paths.

        Raises:
            ConfigurationError: If the configuration is incomplete
        """
        client = cls(
            mch_id=config.mch_id,
            api_key=config.api_key,
            is_prod=config.is_prod,
            sign_type=config.sign_type,
            transport=transport,
            verify_server=config.verify_server,
        )
        if transport is None:
            client._transport = XMLTransport(timeout=config.http_timeout)
        if config.cert_path or config.key_path or config.pkcs12_path:
            try:
                client.add_cert_file_path(
                    config.cert_path or None,
                    config.key_path or None,
                    config.pkcs12_path or None,
                )
            except Exception:
                client.close()
                raise
        return client

    @property
    def mch_id(self) -> str:
        return self._mch_id

    @property
    def environment(self) -> str:
        return "production" if self.is_prod else "sandbox"

    @property
    def transport(self) -> XMLTransport:
        with self._transport_lock:
            if self._transport is None:
                self._transport = XMLTransport()
            return self._transport

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    def register_credential(
        self,
        cert: Optional[CertSource] = None,
        key: Optional[CertSource] = None,
        pkcs12: Optional[CertSource] = None,
    ) -> TLSCredential:
        """
        Load a TLS credential and make it the active one.

        With no arguments, returns the already cached credential.

        Args:
            cert: PEM certificate source
            key: PEM private key source
            pkcs12: PKCS#12 archive source

        Returns:
            The active credential

        Raises:
            ConfigurationError: If the inputs are invalid, or none were given
                and no credential is cached
            CredentialReadError: If a file cannot be read
            CredentialFormatError: If the material cannot be parsed
        """
        tracer = get_tracer()
        with tracer.start_as_current_span("credentials.register") as span:
            add_signing_span_attributes(span, mch_id=self._mch_id)

            # Parsing happens outside the lock; only the swap is exclusive
            credential = load_tls_credential(self._mch_id, cert=cert, key=key, pkcs12=pkcs12)
            if credential is None:
                cached = self._credentials.get()
                if cached is None:
                    raise ConfigurationError(
                        "no certificate supplied and none registered for merchant "
                        f"{self._mch_id}"
                    )
                return cached

            self._credentials.set(credential)
            add_signing_span_attributes(span, cert_fingerprint=credential.fingerprint)
            logger.info(
                "Registered certificate %s for merchant %s (expires %s)",
                credential.fingerprint, self._mch_id, credential.not_valid_after.isoformat(),
            )
            return credential

    def add_cert_file_path(
        self,
        cert_path: PathArg,
        key_path: PathArg,
        pkcs12_path: PathArg,
    ) -> TLSCredential:
        """
        Register ``apiclient_cert.pem``/``apiclient_key.pem`` or ``apiclient_cert.p12``.

        Each argument is a path, or bytes holding the file content.
        """
        return self.register_credential(
            cert=_path_source("cert", cert_path),
            key=_path_source("key", key_path),
            pkcs12=_path_source("pkcs12", pkcs12_path),
        )

    def add_cert_content(
        self,
        cert_content: BytesArg,
        key_content: BytesArg,
        pkcs12_content: BytesArg,
    ) -> TLSCredential:
        """Register certificate material already loaded in memory."""
        return self.register_credential(
            cert=_bytes_source("cert", cert_content),
            key=_bytes_source("key", key_content),
            pkcs12=_bytes_source("pkcs12", pkcs12_content),
        )

    def add_cert_pem_content(self, cert_content: bytes, key_content: bytes) -> TLSCredential:
        return self.add_cert_content(cert_content, key_content, None)

    def add_cert_pkcs12_content(self, pkcs12_content: bytes) -> TLSCredential:
        return self.add_cert_content(None, None, pkcs12_content)

    @property
    def credential(self) -> Optional[TLSCredential]:
        return self._credentials.get()

    def get_tls_config(self) -> TLSConfig:
        """
        Get the TLS configuration wrapping the active credential.

        Raises:
            ConfigurationError: If no credential has been registered
        """
        credential = self._credentials.get()
        if credential is None:
            raise ConfigurationError(f"no certificate registered for merchant {self._mch_id}")
        return TLSConfig(credential=credential, verify_server=self.verify_server)

    # ------------------------------------------------------------------
    # Signatures
    # ------------------------------------------------------------------

    def compute_signature(
        self,
        params: Mapping[str, Any],
        sign_type: Optional[Union[SignType, str]] = None,
    ) -> str:
        """Sign parameters with the production API key."""
        return compute_signature(sign_type or self.sign_type, self.api_key, params)

    def compute_sandbox_signature(self, params: Mapping[str, Any]) -> str:
        """
        Sign parameters for the sandbox environment.

        Raises:
            TransportError: If the sandbox key request fails in transit
            DecodeError: If the sandbox key reply cannot be decoded
            RemoteProtocolError: If the provider rejects the key request
        """
        return compute_sandbox_signature(self._mch_id, self.api_key, params, self.transport)

    def sign(
        self,
        params: Mapping[str, Any],
        sign_type: Optional[Union[SignType, str]] = None,
    ) -> str:
        """Sign parameters for the configured environment."""
        if self.is_prod:
            return self.compute_signature(params, sign_type)
        return self.compute_sandbox_signature(params)

    def close(self) -> None:
        with self._transport_lock:
            if self._transport is not None and self._owns_transport:
                self._transport.close()

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Client(mch_id={self._mch_id!r}, environment={self.environment!r})"
