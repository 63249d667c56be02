"""
Signing utilities for paygate.

This module provides the request signature algorithms used by the provider.
"""

from .sign import (
    SignType,
    compute_signature,
    encode_sign_params,
    generate_nonce,
    verify_signature,
)

__all__ = [
    "SignType",
    "compute_signature",
    "encode_sign_params",
    "generate_nonce",
    "verify_signature",
]
