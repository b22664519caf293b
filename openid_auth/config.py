# openid_auth/config.py
"""
Centralized configuration for the OpenID authenticator.

All configurable values are read from environment variables with sensible
defaults, so different deployments can pin their own trust anchor without
code changes.

Usage:
    from openid_auth.config import get_trusted_authority

    authority = get_trusted_authority()

Environment Variables:
    OPENID_AUTH_TRUSTED_AUTHORITY: Hex ``flag || public key`` of the bulletin signer
    OPENID_AUTH_MAX_WORKERS: Thread count for batch verification (default: 4)
    OPENID_AUTH_METRICS_NAMESPACE: Prometheus metric prefix (default: openid_auth)
"""

import logging
import os
from typing import TYPE_CHECKING, Final, Optional

from openid_auth.errors import ConfigurationError, MalformedEncoding

if TYPE_CHECKING:
    from openid_auth.signature import PublicKey

logger = logging.getLogger(__name__)

TRUSTED_AUTHORITY_ENV: Final[str] = "OPENID_AUTH_TRUSTED_AUTHORITY"

# =============================================================================
# Batch Verification
# =============================================================================

MAX_WORKERS: Final[int] = int(os.getenv("OPENID_AUTH_MAX_WORKERS", "4"))

# =============================================================================
# Metrics
# =============================================================================

METRICS_NAMESPACE: Final[str] = os.getenv("OPENID_AUTH_METRICS_NAMESPACE", "openid_auth")

# =============================================================================
# Helper Functions
# =============================================================================


def get_trusted_authority() -> Optional["PublicKey"]:
    """
    Read the bulletin signer key from the environment.

    Parsed on every call so a rotated key takes effect without restarting.

    Returns:
        The configured PublicKey, or None when the variable is unset.

    Raises:
        ConfigurationError: If the variable is set but cannot be decoded.
    """
    from openid_auth.signature import PublicKey

    value = os.getenv(TRUSTED_AUTHORITY_ENV, "").strip()
    if not value:
        return None
    try:
        return PublicKey.from_hex(value)
    except MalformedEncoding as e:
        logger.warning(f"Unusable {TRUSTED_AUTHORITY_ENV}: {e}")
        raise ConfigurationError(f"Invalid {TRUSTED_AUTHORITY_ENV}: {e}") from e


def print_config() -> None:
    """Print current configuration (useful for debugging)."""
    print("OpenID Authenticator Configuration:")
    print(f"  {TRUSTED_AUTHORITY_ENV}: {os.getenv(TRUSTED_AUTHORITY_ENV) or '(unset)'}")
    print(f"  MAX_WORKERS:       {MAX_WORKERS}")
    print(f"  METRICS_NAMESPACE: {METRICS_NAMESPACE}")


if __name__ == "__main__":
    print_config()
