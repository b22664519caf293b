"""
OpenID Authenticator errors.

Every verification outcome other than success is an exception deriving from
AuthenticatorError. Outcomes are terminal: the verifier is a pure function
of its inputs, so retrying the same bytes always yields the same error.
"""


class AuthenticatorError(Exception):
    """Base class for all authenticator failures."""

    kind = "AuthenticatorError"


class MalformedEncoding(AuthenticatorError):
    """Bytes could not be decoded (bad length, flag, point or field element)."""

    kind = "MalformedEncoding"


class InvalidSignature(AuthenticatorError):
    """A signature did not verify against the given message and key."""

    kind = "InvalidSignature"


class AddressMismatch(AuthenticatorError):
    kind = "AddressMismatch"


class AuthenticatorExpired(AuthenticatorError):
    kind = "AuthenticatorExpired"


class BulletinSignatureInvalid(AuthenticatorError):
    kind = "BulletinSignatureInvalid"


class UnknownIssuer(AuthenticatorError):
    kind = "UnknownIssuer"


class JwtSignatureInvalid(AuthenticatorError):
    kind = "JwtSignatureInvalid"


class ProofInvalid(AuthenticatorError):
    kind = "ProofInvalid"


class UserSignatureInvalid(AuthenticatorError):
    kind = "UserSignatureInvalid"


class ConfigurationError(Exception):
    """Verifier configuration is missing or unusable (not a verification outcome)."""
