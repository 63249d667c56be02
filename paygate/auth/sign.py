"""
Request signing for the payment provider API.

Every request sent to the provider carries a ``sign`` parameter computed over
the other request parameters and the merchant API key. The parameters are
first encoded into the canonical signing string:

    key1=value1&key2=value2&...&key=<api_key>

with keys sorted lexicographically and empty values (and ``sign`` itself)
left out. The string is then digested with MD5 or with HMAC-SHA256 keyed by
the API key, and rendered as uppercase hexadecimal.

Usage:
    from paygate.auth import SignType, compute_signature

    sign = compute_signature(
        SignType.HMAC_SHA256,
        api_key="192006250b4c09247ec02edce69f6a2d",
        params={"mch_id": "10000100", "nonce_str": "ibuaiVcKdpRxkhJA"},
    )
"""

import hashlib
import hmac
import logging
import secrets
import string
from enum import Enum
from typing import Any, Mapping, Union

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)

SIGN_FIELD = "sign"
NONCE_ALPHABET = string.ascii_letters + string.digits
NONCE_LENGTH = 32


class SignType(str, Enum):
    """Signature algorithms accepted by the provider."""
    MD5 = "MD5"
    HMAC_SHA256 = "HMAC-SHA256"

    @classmethod
    def parse(cls, value: Union["SignType", str]) -> "SignType":
        """
        Resolve a sign type from an enum member or its wire value.

        Raises:
            ConfigurationError: If the value names no supported algorithm
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            normalized = value.strip().upper().replace("_", "-")
            for member in cls:
                if member.value == normalized:
                    return member
        raise ConfigurationError(
            f"unsupported sign type {value!r}, expected one of "
            f"{', '.join(m.value for m in cls)}"
        )


def _param_value(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def encode_sign_params(params: Mapping[str, Any], api_key: str) -> str:
    """
    Build the canonical signing string for a parameter set.

    Args:
        params: Request parameters
        api_key: Merchant API key, appended as the trailing ``key`` term

    Returns:
        Canonical signing string
    """
    pairs = []
    for name in sorted(params):
        if name == SIGN_FIELD:
            continue
        value = _param_value(params[name])
        if value:
            pairs.append(f"{name}={value}")
    pairs.append(f"key={api_key}")
    return "&".join(pairs)


def compute_signature(
    sign_type: Union[SignType, str],
    api_key: str,
    params: Mapping[str, Any],
) -> str:
    """
    Sign a parameter set.

    Args:
        sign_type: MD5 or HMAC-SHA256
        api_key: Merchant API key (also the HMAC key)
        params: Request parameters

    Returns:
        Uppercase hexadecimal digest
    """
    sign_type = SignType.parse(sign_type)
    payload = encode_sign_params(params, api_key).encode("utf-8")
    logger.debug("Signing %d parameters (%d bytes) with %s", len(params), len(payload), sign_type.value)

    if sign_type is SignType.HMAC_SHA256:
        digest = hmac.new(api_key.encode("utf-8"), payload, hashlib.sha256).hexdigest()
    else:
        digest = hashlib.md5(payload).hexdigest()
    return digest.upper()


def verify_signature(
    sign_type: Union[SignType, str],
    api_key: str,
    params: Mapping[str, Any],
) -> bool:
    """Check the ``sign`` field of a parameter set against a fresh signature."""
    received = _param_value(params.get(SIGN_FIELD))
    if not received:
        return False
    expected = compute_signature(sign_type, api_key, params)
    return hmac.compare_digest(expected, received.upper())


def generate_nonce(length: int = NONCE_LENGTH) -> str:
    """Generate a random alphanumeric ``nonce_str``."""
    if length <= 0:
        raise ConfigurationError(f"nonce length must be positive, got {length}")
    return "".join(secrets.choice(NONCE_ALPHABET) for _ in range(length))
