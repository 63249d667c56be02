"""
Sandbox sign-key endpoint mock for local testing.

This module provides a fake of the provider's sandbox sign-key endpoint,
served through ``httpx.MockTransport`` so the real ``XMLTransport`` code
path is exercised without network access.

The mock simulates:
- Successful key derivation (``return_code=SUCCESS``)
- Provider-reported failures (``return_code=FAIL`` with a message)
- Malformed response bodies and HTTP error statuses
- Connection failures

Usage:
    from tests.mocks import SandboxEndpointMock

    mock = SandboxEndpointMock()
    mock.fail_with("sign error")

    with mock.transport() as transport:
        fetch_sandbox_sign_key("1230000109", "apikey", transport)

    assert mock.requests[0]["mch_id"] == "1230000109"
"""

import threading
from dataclasses import dataclass
from typing import Optional

import httpx

from paygate.xmlcodec import parse_xml
from paygate.sandbox import XMLTransport


@dataclass
class SandboxEndpointMockConfig:
    """
    Configuration for the sandbox endpoint mock.

    Attributes:
        sandbox_signkey: Key returned on success
        return_code: Value of ``return_code`` in the reply
        return_msg: Value of ``return_msg`` in the reply
        raw_body: Body returned verbatim instead of a generated reply
        status_code: HTTP status of the reply
        connect_error: Raise a connection error instead of replying
    """
    sandbox_signkey: str = "0123456789abcdef0123456789abcdef"
    return_code: str = "SUCCESS"
    return_msg: str = "ok"
    raw_body: Optional[bytes] = None
    status_code: int = 200
    connect_error: bool = False


class SandboxEndpointMock:
    """Fake sandbox sign-key endpoint recording every request it receives."""

    def __init__(self, config: Optional[SandboxEndpointMockConfig] = None):
        self.config = config or SandboxEndpointMockConfig()
        self.requests: list[dict[str, str]] = []
        self.urls: list[str] = []
        self._lock = threading.Lock()

    def fail_with(self, message: str) -> None:
        self.config.return_code = "FAIL"
        self.config.return_msg = message

    def reply_with(self, body: bytes, status_code: int = 200) -> None:
        self.config.raw_body = body
        self.config.status_code = status_code

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def _render(self) -> bytes:
        if self.config.raw_body is not None:
            return self.config.raw_body
        parts = [
            "<xml>",
            f"<return_code><![CDATA[{self.config.return_code}]]></return_code>",
            f"<return_msg><![CDATA[{self.config.return_msg}]]></return_msg>",
        ]
        if self.config.return_code == "SUCCESS":
            parts.append("<mch_id><![CDATA[1230000109]]></mch_id>")
            parts.append(f"<sandbox_signkey><![CDATA[{self.config.sandbox_signkey}]]></sandbox_signkey>")
        parts.append("</xml>")
        return "".join(parts).encode("utf-8")

    def handler(self, request: httpx.Request) -> httpx.Response:
        if self.config.connect_error:
            raise httpx.ConnectError("connection refused", request=request)
        with self._lock:
            self.urls.append(str(request.url))
            self.requests.append(parse_xml(request.content))
        return httpx.Response(self.config.status_code, content=self._render())

    def http_client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))

    def transport(self) -> XMLTransport:
        return XMLTransport(client=self.http_client())
