"""
Parallel and async verification of many authenticators.

Each verification is pure and owns its inputs, so jobs run on a thread pool
without coordination. Async wrappers hand the work to the same pool so an
event loop is never blocked by pairing arithmetic.
"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional, Sequence

from openid_auth import config
from openid_auth.address import SuiAddress
from openid_auth.authenticator import OpenIdAuthenticator
from openid_auth.errors import AuthenticatorError, ConfigurationError
from openid_auth.intent import IntentMessage
from openid_auth.metrics import VerifierMetrics
from openid_auth.signature import PublicKey

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerificationJob:
    """One authenticator to check against one transaction intent."""

    authenticator: OpenIdAuthenticator
    intent_msg: IntentMessage
    author: SuiAddress
    epoch: Optional[int] = None


@dataclass
class VerificationResult:
    """Result of a batch verification."""

    job_index: int
    is_valid: bool
    error_kind: Optional[str] = None
    error: Optional[str] = None


class BatchVerifier:
    """
    Verify authenticators concurrently.

    Example:
        >>> verifier = BatchVerifier(trusted_authority=authority_key)
        >>> with verifier:
        ...     results = verifier.verify_many(jobs)
        >>> [r.is_valid for r in results]
    """

    def __init__(
        self,
        trusted_authority: Optional[PublicKey] = None,
        max_workers: Optional[int] = None,
        metrics: Optional[VerifierMetrics] = None,
    ):
        """
        Args:
            trusted_authority: Bulletin signer key; read from configuration if None.
            max_workers: Thread count (defaults to OPENID_AUTH_MAX_WORKERS).
            metrics: Metrics collector; a private one is created if None.

        Raises:
            ConfigurationError: if no trusted authority is available.
        """
        self._trusted_authority = trusted_authority or config.get_trusted_authority()
        if self._trusted_authority is None:
            raise ConfigurationError("BatchVerifier requires a trusted authority")
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or config.MAX_WORKERS,
            thread_name_prefix="openid-auth",
        )
        self._metrics = metrics or VerifierMetrics()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    @property
    def metrics(self) -> VerifierMetrics:
        return self._metrics

    def verify(self, job: VerificationJob, job_index: int = 0) -> VerificationResult:
        """Verify a single job on the calling thread."""
        with self._metrics.verification_timer():
            try:
                job.authenticator.verify_secure_generic(
                    job.intent_msg,
                    job.author,
                    job.epoch,
                    trusted_authority=self._trusted_authority,
                )
            except AuthenticatorError as e:
                logger.debug(f"Job {job_index} rejected ({e.kind}): {e}")
                self._metrics.record_outcome(e.kind)
                return VerificationResult(
                    job_index=job_index, is_valid=False, error_kind=e.kind, error=str(e)
                )
        self._metrics.record_outcome("success")
        return VerificationResult(job_index=job_index, is_valid=True)

    def verify_many(self, jobs: Sequence[VerificationJob]) -> List[VerificationResult]:
        """Verify jobs in parallel; results keep the input order."""
        futures = [self._executor.submit(self.verify, job, i) for i, job in enumerate(jobs)]
        return [future.result() for future in futures]

    async def averify(self, job: VerificationJob, job_index: int = 0) -> VerificationResult:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, self.verify, job, job_index)

    async def averify_many(self, jobs: Sequence[VerificationJob]) -> List[VerificationResult]:
        tasks = [self.averify(job, i) for i, job in enumerate(jobs)]
        return list(await asyncio.gather(*tasks))
