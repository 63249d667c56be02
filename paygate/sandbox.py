"""
Sandbox signing key exchange.

Requests sent to the provider's sandbox environment are not signed with the
merchant API key but with a derived sandbox key. The key is fetched from a
dedicated endpoint:

1. generate a random ``nonce_str``
2. sign ``{mch_id, nonce_str}`` with the real API key (always MD5)
3. POST ``{mch_id, nonce_str, sign}`` as XML to the sign-key endpoint
4. read ``sandbox_signkey`` from the XML reply

No retries are performed and keys are not cached; every call performs a
full round-trip.

Usage:
    from paygate.sandbox import XMLTransport, fetch_sandbox_sign_key

    with XMLTransport(timeout=10.0) as transport:
        key = fetch_sandbox_sign_key("1230000109", api_key, transport)
"""

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import httpx

from .auth import SignType, compute_signature, generate_nonce
from .errors import DecodeError, RemoteProtocolError, TransportError
from .tracing import add_signing_span_attributes, get_tracer
from .xmlcodec import generate_xml, parse_xml

logger = logging.getLogger(__name__)

SANDBOX_SIGN_KEY_URL = "https://api.mch.weixin.qq.com/sandboxnew/pay/getsignkey"

RETURN_CODE_SUCCESS = "SUCCESS"
RETURN_CODE_FAIL = "FAIL"


@dataclass
class SandboxKeyResponse:
    """Parsed reply of the sandbox sign-key endpoint."""
    return_code: str
    return_msg: str = ""
    sandbox_signkey: str = ""
    mch_id: str = ""

    @property
    def is_success(self) -> bool:
        return self.return_code != RETURN_CODE_FAIL

    @classmethod
    def from_xml(cls, body: bytes) -> "SandboxKeyResponse":
        """
        Parse the XML reply.

        Raises:
            DecodeError: If the body is malformed or has no ``return_code``
        """
        fields = parse_xml(body)
        return_code = fields.get("return_code", "").strip()
        if not return_code:
            raise DecodeError("sandbox key response has no return_code")
        return cls(
            return_code=return_code,
            return_msg=fields.get("return_msg", ""),
            sandbox_signkey=fields.get("sandbox_signkey", ""),
            mch_id=fields.get("mch_id", ""),
        )


class XMLTransport:
    """
    Blocking HTTP transport for XML request bodies.

    Wraps an ``httpx.Client``. Every ``httpx`` failure (connection, timeout,
    TLS, non-2xx status) is raised as ``TransportError``.
    """

    def __init__(
        self,
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ):
        """
        Args:
            timeout: Request timeout in seconds (ignored when ``client`` is given)
            client: Pre-configured httpx client; the transport then does not own it
        """
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout)

    def post(self, url: str, xml_body: str) -> bytes:
        """POST an XML document and return the raw response body."""
        try:
            response = self._client.post(
                url,
                content=xml_body.encode("utf-8"),
                headers={"Content-Type": "application/xml; charset=utf-8"},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("POST %s failed: %s", url, e)
            raise TransportError(f"POST {url} failed: {e}") from e
        return response.content

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "XMLTransport":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def fetch_sandbox_sign_key(
    mch_id: str,
    api_key: str,
    transport: XMLTransport,
    nonce: Optional[str] = None,
    url: str = SANDBOX_SIGN_KEY_URL,
) -> str:
    """
    Retrieve a sandbox signing key from the provider.

    Args:
        mch_id: Merchant ID
        api_key: Production API key, used to sign the key request
        transport: HTTP/XML transport
        nonce: Nonce to send (random when omitted)
        url: Sign-key endpoint

    Returns:
        The derived sandbox key

    Raises:
        TransportError: If the HTTP round-trip fails
        DecodeError: If the reply cannot be decoded
        RemoteProtocolError: If the provider reports a failure
    """
    tracer = get_tracer()
    with tracer.start_as_current_span("sandbox.fetch_sign_key") as span:
        add_signing_span_attributes(
            span,
            mch_id=mch_id,
            sign_type=SignType.MD5.value,
            environment="sandbox",
        )

        request = {"mch_id": mch_id, "nonce_str": nonce or generate_nonce()}
        request["sign"] = compute_signature(SignType.MD5, api_key, request)

        body = transport.post(url, generate_xml(request))
        response = SandboxKeyResponse.from_xml(body)
        span.set_attribute("paygate.return_code", response.return_code)

        if not response.is_success:
            logger.warning(
                "Sandbox key request rejected for merchant %s: %s",
                mch_id, response.return_msg,
            )
            raise RemoteProtocolError(response.return_msg, return_code=response.return_code)
        if not response.sandbox_signkey:
            raise DecodeError("sandbox key response has no sandbox_signkey")

        logger.info("Retrieved sandbox sign key for merchant %s", mch_id)
        return response.sandbox_signkey


def compute_sandbox_signature(
    mch_id: str,
    api_key: str,
    params: Mapping[str, Any],
    transport: XMLTransport,
) -> str:
    """
    Sign parameters for the sandbox environment.

    A fresh sandbox key is fetched for every call, then the parameters are
    signed with MD5 under that key.
    """
    sandbox_key = fetch_sandbox_sign_key(mch_id, api_key, transport)
    return compute_signature(SignType.MD5, sandbox_key, params)
