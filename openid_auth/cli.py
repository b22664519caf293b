"""
OpenID Authenticator Command Line Interface.

Provides commands for generating signer keys, deriving authenticator
addresses and verifying serialized authenticators.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from openid_auth.address import SuiAddress
from openid_auth.authenticator import OpenIdAuthenticator
from openid_auth.config import TRUSTED_AUTHORITY_ENV
from openid_auth.errors import AuthenticatorError, ConfigurationError, MalformedEncoding
from openid_auth.intent import Intent, IntentMessage
from openid_auth.keys import KeyPair
from openid_auth.signature import PublicKey, SignatureScheme

SCHEMES = {
    "ed25519": SignatureScheme.ED25519,
    "secp256k1": SignatureScheme.SECP256K1,
    "secp256r1": SignatureScheme.SECP256R1,
}


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def _read_hex(path: str) -> bytes:
    try:
        text = sys.stdin.read() if path == "-" else Path(path).read_text()
        return bytes.fromhex(text.strip().removeprefix("0x"))
    except ValueError as e:
        # UnicodeDecodeError is a ValueError too.
        raise MalformedEncoding(f"{path} does not contain hex: {e}") from e


def cmd_keygen(args: argparse.Namespace) -> int:
    """Generate a signing key (bulletin authority or ephemeral signer)."""
    keypair = KeyPair.generate(SCHEMES[args.scheme])
    public_key = keypair.public()

    if args.env:
        print(f"export {TRUSTED_AUTHORITY_ENV}='{public_key.to_bytes().hex()}'")
        print(f"# Private key (keep secret): {keypair.private_bytes().hex()}", file=sys.stderr)
    else:
        print(f"Scheme:      {args.scheme}")
        print(f"Address:     {public_key.to_address()}")
        print(f"Public key:  {public_key.to_bytes().hex()}")
        print(f"Private key: {keypair.private_bytes().hex()}")
    return 0


def cmd_address(args: argparse.Namespace) -> int:
    """Print the address an authenticator signs for."""
    try:
        authenticator = OpenIdAuthenticator.from_bytes(_read_hex(args.authenticator))
    except (OSError, AuthenticatorError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(authenticator.address())
    return 0


def cmd_verify(args: argparse.Namespace) -> int:
    """Verify a serialized authenticator against transaction data."""
    try:
        authenticator = OpenIdAuthenticator.from_bytes(_read_hex(args.authenticator))
        intent_msg = IntentMessage(Intent.transaction(), _read_hex(args.tx))
        author = SuiAddress.from_hex(args.author)
        authority = PublicKey.from_hex(args.authority) if args.authority else None
    except (OSError, AuthenticatorError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        authenticator.verify_secure_generic(
            intent_msg, author, args.epoch, trusted_authority=authority
        )
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except AuthenticatorError as e:
        if args.json:
            print(json.dumps({"valid": False, "error": e.kind, "message": str(e)}))
        else:
            print(f"INVALID ({e.kind}): {e}")
        return 1

    if args.json:
        print(json.dumps({"valid": True, "address": str(author)}))
    else:
        print("VALID")
        print(f"   Address: {author}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="openid-auth",
        description="OpenID authenticator CLI - verify zero-knowledge federated signers",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose output")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    p_keygen = subparsers.add_parser("keygen", help="Generate a signing key")
    p_keygen.add_argument("--scheme", choices=sorted(SCHEMES), default="ed25519")
    p_keygen.add_argument(
        "--env", action="store_true", help="Output as a trusted-authority environment variable"
    )

    p_address = subparsers.add_parser("address", help="Derive an authenticator's address")
    p_address.add_argument("authenticator", help="File with the hex authenticator ('-' for stdin)")

    p_verify = subparsers.add_parser("verify", help="Verify an authenticator")
    p_verify.add_argument("authenticator", help="File with the hex authenticator ('-' for stdin)")
    p_verify.add_argument("--tx", required=True, help="File with hex transaction data")
    p_verify.add_argument("--author", required=True, help="Claimed signer address (hex)")
    p_verify.add_argument("--epoch", type=int, help="Current epoch (omit to skip the check)")
    p_verify.add_argument(
        "--authority", help=f"Bulletin signer public key (hex); defaults to {TRUSTED_AUTHORITY_ENV}"
    )
    p_verify.add_argument("--json", action="store_true", help="Output as JSON")

    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    if args.command == "keygen":
        return cmd_keygen(args)
    elif args.command == "address":
        return cmd_address(args)
    elif args.command == "verify":
        return cmd_verify(args)
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
