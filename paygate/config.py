"""Configuration for the paygate client."""

import os
from dataclasses import dataclass
from dotenv import load_dotenv

from .errors import ConfigurationError

load_dotenv()

_TRUE_VALUES = ("true", "1", "yes")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in _TRUE_VALUES


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name, "").strip()
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from None


@dataclass
class ClientConfig:
    """Configuration for a merchant client."""

    # Merchant account
    mch_id: str = ""
    api_key: str = ""

    # Production or sandbox environment
    is_prod: bool = True
    sign_type: str = "MD5"

    # Client certificate, either a PEM pair or a PKCS#12 archive
    cert_path: str = ""
    key_path: str = ""
    pkcs12_path: str = ""

    # HTTP transport
    http_timeout: float = 10.0
    verify_server: bool = True

    # OpenTelemetry configuration
    otel_endpoint: str = ""
    otel_console_export: bool = False

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """Load configuration from environment variables."""
        return cls(
            mch_id=os.getenv("PAYGATE_MCH_ID", ""),
            api_key=os.getenv("PAYGATE_API_KEY", ""),
            is_prod=_env_bool("PAYGATE_IS_PROD", cls.is_prod),
            sign_type=os.getenv("PAYGATE_SIGN_TYPE", cls.sign_type),
            cert_path=os.getenv("PAYGATE_CERT_PATH", ""),
            key_path=os.getenv("PAYGATE_KEY_PATH", ""),
            pkcs12_path=os.getenv("PAYGATE_PKCS12_PATH", ""),
            http_timeout=_env_float("PAYGATE_HTTP_TIMEOUT", cls.http_timeout),
            verify_server=_env_bool("PAYGATE_VERIFY_SERVER", cls.verify_server),
            otel_endpoint=os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", ""),
            otel_console_export=_env_bool("OTEL_CONSOLE_EXPORT", False),
        )
