"""Epoch validity gate."""

from typing import Optional

from openid_auth.errors import AuthenticatorExpired


def check_epoch(max_epoch: int, current_epoch: Optional[int] = None) -> None:
    """
    Reject an authenticator used after its last valid epoch.

    Passing ``current_epoch=None`` skips the check entirely; callers that need
    freshness must always supply the current epoch.
    """
    if current_epoch is None:
        return
    if current_epoch > max_epoch:
        raise AuthenticatorExpired(
            f"Current epoch {current_epoch} is past max epoch {max_epoch}"
        )
