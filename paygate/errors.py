"""Exceptions raised by the paygate credential and signing core."""

from typing import Optional


class PayGateError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(PayGateError):
    """Invalid or incomplete client or credential arguments."""


class CredentialReadError(PayGateError, OSError):
    """A certificate file could not be read from disk."""

    def __init__(self, path: str, message: str):
        super().__init__(message)
        self.path = path


class CredentialFormatError(PayGateError):
    """Certificate material could not be parsed into a TLS credential."""


class TransportError(PayGateError):
    """Network failure while talking to the provider."""


class DecodeError(PayGateError):
    """The provider's response body could not be decoded."""


class RemoteProtocolError(PayGateError):
    """The provider explicitly reported a failure."""

    def __init__(self, message: str, return_code: Optional[str] = "FAIL"):
        super().__init__(message)
        self.message = message
        self.return_code = return_code
