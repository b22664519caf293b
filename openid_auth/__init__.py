"""
OpenID Authenticator - zero-knowledge authentication of federated signers.

Verifies that a transaction was authorized by the holder of an OAuth/OIDC
identity without putting the identity token on-chain: a Groth16 proof ties
the token to an address, an ephemeral key signs the transaction and a
trusted authority vouches for the identity-provider keys.
"""

__version__ = "0.1.0"

# Core verification
from .authenticator import MaskedContent, OpenIdAuthenticator
from .address import SuiAddress, derive_address
from .bulletin import ProviderKeyRecord, bulletin_intent_message, validate_bulletin
from .epoch import check_epoch
from .groth16 import PreparedVerifyingKey, Proof, verify_groth16
from .intent import Intent, IntentMessage, IntentScope
from .signature import PublicKey, Signature, SignatureScheme
from .keys import KeyPair

# Errors
from .errors import (
    AddressMismatch,
    AuthenticatorError,
    AuthenticatorExpired,
    BulletinSignatureInvalid,
    ConfigurationError,
    InvalidSignature,
    JwtSignatureInvalid,
    MalformedEncoding,
    ProofInvalid,
    UnknownIssuer,
    UserSignatureInvalid,
)


# Batch verification and metrics pull in the thread pool and prometheus_client.
def __getattr__(name):
    """Lazy loading of batch verification and metrics."""
    if name in ("BatchVerifier", "VerificationJob", "VerificationResult"):
        from . import batch

        return getattr(batch, name)
    elif name == "VerifierMetrics":
        from .metrics import VerifierMetrics

        return VerifierMetrics
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    # Core
    "OpenIdAuthenticator",
    "MaskedContent",
    "SuiAddress",
    "derive_address",
    "ProviderKeyRecord",
    "bulletin_intent_message",
    "validate_bulletin",
    "check_epoch",
    "PreparedVerifyingKey",
    "Proof",
    "verify_groth16",
    "Intent",
    "IntentMessage",
    "IntentScope",
    "PublicKey",
    "Signature",
    "SignatureScheme",
    "KeyPair",
    # Errors
    "AuthenticatorError",
    "AddressMismatch",
    "AuthenticatorExpired",
    "BulletinSignatureInvalid",
    "UnknownIssuer",
    "JwtSignatureInvalid",
    "ProofInvalid",
    "UserSignatureInvalid",
    "MalformedEncoding",
    "InvalidSignature",
    "ConfigurationError",
    # Batch (lazy)
    "BatchVerifier",
    "VerificationJob",
    "VerificationResult",
    "VerifierMetrics",
    "__version__",
]
