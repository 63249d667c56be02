"""Command line helpers: ``python -m paygate {sign,sandbox-key,check-cert}``."""

import argparse
import logging
import sys
from typing import Optional, Sequence

from .auth import SignType, compute_signature
from .config import ClientConfig
from .credentials import CertSource, load_tls_credential
from .errors import ConfigurationError, PayGateError
from .sandbox import XMLTransport, fetch_sandbox_sign_key
from .tracing import init_tracing

logger = logging.getLogger("paygate")


def _parse_params(pairs: Sequence[str]) -> dict[str, str]:
    params = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name:
            raise ConfigurationError(f"parameter {pair!r} is not in name=value form")
        params[name] = value
    return params


def _sign_type_arg(value: str) -> SignType:
    try:
        return SignType.parse(value)
    except ConfigurationError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def _require(value: str, flag: str) -> str:
    if not value:
        raise ConfigurationError(f"{flag} is required")
    return value


def cmd_sign(args: argparse.Namespace) -> int:
    api_key = _require(args.api_key, "--api-key")
    print(compute_signature(args.sign_type, api_key, _parse_params(args.params)))
    return 0


def cmd_sandbox_key(args: argparse.Namespace) -> int:
    mch_id = _require(args.mch_id, "--mch-id")
    api_key = _require(args.api_key, "--api-key")
    with XMLTransport(timeout=args.timeout) as transport:
        print(fetch_sandbox_sign_key(mch_id, api_key, transport))
    return 0


def cmd_check_cert(args: argparse.Namespace) -> int:
    mch_id = _require(args.mch_id, "--mch-id")
    credential = load_tls_credential(
        mch_id,
        cert=CertSource.from_path(args.cert) if args.cert else None,
        key=CertSource.from_path(args.key) if args.key else None,
        pkcs12=CertSource.from_path(args.pkcs12) if args.pkcs12 else None,
    )
    if credential is None:
        raise ConfigurationError("either --cert and --key or --pkcs12 is required")
    print(f"subject:     {credential.certificate.subject.rfc4514_string()}")
    print(f"serial:      {credential.serial_number:X}")
    print(f"fingerprint: {credential.fingerprint}")
    print(f"expires:     {credential.not_valid_after.isoformat()}")
    return 0


def build_parser(config: Optional[ClientConfig] = None) -> argparse.ArgumentParser:
    if config is None:
        config = ClientConfig.from_env()

    parser = argparse.ArgumentParser(prog="paygate", description="Payment provider credential and signing tools")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    sign = subparsers.add_parser("sign", help="Compute a request signature")
    sign.add_argument("--api-key", default=config.api_key, help="API key (default: PAYGATE_API_KEY)")
    sign.add_argument(
        "--sign-type",
        type=_sign_type_arg,
        default=config.sign_type,
        help="MD5 or HMAC-SHA256 (default: PAYGATE_SIGN_TYPE or MD5)",
    )
    sign.add_argument("params", nargs="*", metavar="NAME=VALUE", help="Request parameters")
    sign.set_defaults(func=cmd_sign)

    sandbox = subparsers.add_parser("sandbox-key", help="Fetch a sandbox signing key")
    sandbox.add_argument("--mch-id", default=config.mch_id, help="Merchant ID (default: PAYGATE_MCH_ID)")
    sandbox.add_argument("--api-key", default=config.api_key, help="API key (default: PAYGATE_API_KEY)")
    sandbox.add_argument("--timeout", type=float, default=config.http_timeout, help="HTTP timeout in seconds")
    sandbox.set_defaults(func=cmd_sandbox_key)

    check = subparsers.add_parser("check-cert", help="Load a client certificate and print its details")
    check.add_argument("--mch-id", default=config.mch_id, help="Merchant ID, the PKCS#12 passphrase")
    check.add_argument("--cert", default=config.cert_path or None, help="PEM certificate path")
    check.add_argument("--key", default=config.key_path or None, help="PEM private key path")
    check.add_argument("--pkcs12", default=config.pkcs12_path or None, help="PKCS#12 archive path")
    check.set_defaults(func=cmd_check_cert)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    try:
        config = ClientConfig.from_env()
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    parser = build_parser(config)
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    if config.otel_endpoint or config.otel_console_export:
        init_tracing(
            otlp_endpoint=config.otel_endpoint or None,
            enable_console_export=config.otel_console_export,
        )

    try:
        return args.func(args)
    except PayGateError as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
