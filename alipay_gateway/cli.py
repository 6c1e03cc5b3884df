#!/usr/bin/env python3
"""
Alipay Gateway Command Line Interface

Operator helpers for setting up a merchant configuration.

Usage:
    alipay-gateway [--log-level LEVEL] cert-sn --cert <file>
    alipay-gateway root-cert-sn --cert <file>
    alipay-gateway keygen --output <dir> [--bits 2048]
    alipay-gateway sign-content --params <file>
"""

import argparse
import json
import os
import sys

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from .config import is_debug, is_production
from .logging_config import configure_logging


def read_text(path: str) -> str:
    """Read a text file."""
    with open(path, 'r', encoding='utf-8') as f:
        return f.read()


def cmd_cert_sn(args):
    """Print the serial-number identifier of a certificate."""
    from .certificates import get_cert_sn_from_content

    print(get_cert_sn_from_content(read_text(args.cert)))
    return 0


def cmd_root_cert_sn(args):
    """Print the root certificate SN string of a root bundle."""
    from .certificates import get_root_cert_sn

    sn = get_root_cert_sn(read_text(args.cert))
    if not sn:
        print("No RSA root certificate found", file=sys.stderr)
        return 1
    print(sn)
    return 0


def cmd_keygen(args):
    """Generate an app RSA key pair in the base64 DER form the merchant console uses."""
    from .util import b64e

    key = rsa.generate_private_key(public_exponent=65537, key_size=args.bits)
    private_der = key.private_bytes(
        serialization.Encoding.DER,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption()
    )
    public_der = key.public_key().public_bytes(
        serialization.Encoding.DER,
        serialization.PublicFormat.SubjectPublicKeyInfo
    )

    os.makedirs(args.output, exist_ok=True)
    private_path = os.path.join(args.output, "app_private_key.txt")
    public_path = os.path.join(args.output, "app_public_key.txt")
    with open(private_path, 'w', encoding='utf-8') as f:
        f.write(b64e(private_der))
    with open(public_path, 'w', encoding='utf-8') as f:
        f.write(b64e(public_der))

    print(f"Private key saved to: {private_path}")
    print(f"Public key saved to: {public_path}")
    return 0


def cmd_sign_content(args):
    """Print the canonical signing content of a JSON object of parameters."""
    from .signature import build_sign_content

    with open(args.params, 'r', encoding='utf-8') as f:
        params = json.load(f)
    if not isinstance(params, dict):
        print("Parameters file must contain a JSON object", file=sys.stderr)
        return 1
    print(build_sign_content(params))
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="alipay-gateway",
        description="Alipay gateway signing helpers"
    )
    parser.add_argument("--log-level", help="Enable logging at this level (default: off, DEBUG when ALIPAY_DEBUG is set)")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    p_cert = subparsers.add_parser("cert-sn", help="Compute a certificate SN")
    p_cert.add_argument("--cert", required=True, help="PEM certificate file")

    p_root = subparsers.add_parser("root-cert-sn", help="Compute the root certificate SN string")
    p_root.add_argument("--cert", required=True, help="PEM root bundle file")

    p_keygen = subparsers.add_parser("keygen", help="Generate an app RSA key pair")
    p_keygen.add_argument("--output", "-o", required=True, help="Output directory")
    p_keygen.add_argument("--bits", type=int, default=2048, help="Key size")

    p_sign = subparsers.add_parser("sign-content", help="Show canonical signing content")
    p_sign.add_argument("--params", required=True, help="JSON object of parameters")

    args = parser.parse_args(argv)

    level = args.log_level or ("DEBUG" if is_debug() else None)
    if level:
        configure_logging(level, json_format=is_production())

    if args.command is None:
        parser.print_help()
        return 1

    commands = {
        "cert-sn": cmd_cert_sn,
        "root-cert-sn": cmd_root_cert_sn,
        "keygen": cmd_keygen,
        "sign-content": cmd_sign_content,
    }

    try:
        return commands[args.command](args)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
