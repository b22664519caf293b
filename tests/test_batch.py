"""
Tests for BatchVerifier and VerifierMetrics.
"""

import pytest

from conftest import MAX_EPOCH
from openid_auth import BatchVerifier, ConfigurationError, SuiAddress, VerificationJob, VerifierMetrics


@pytest.fixture
def jobs(bundle):
    return [
        VerificationJob(bundle.authenticator, bundle.intent_msg, bundle.address, 0),
        VerificationJob(bundle.authenticator, bundle.intent_msg, bundle.address, MAX_EPOCH + 1),
        VerificationJob(bundle.authenticator, bundle.intent_msg, SuiAddress(bytes(32)), 0),
    ]


@pytest.fixture
def verifier(bundle):
    with BatchVerifier(trusted_authority=bundle.authority, max_workers=2) as v:
        yield v


class TestBatchVerifier:
    """Tests for thread-pool verification."""

    def test_verify_many_keeps_order(self, verifier, jobs):
        results = verifier.verify_many(jobs)

        assert [r.job_index for r in results] == [0, 1, 2]
        assert [r.is_valid for r in results] == [True, False, False]
        assert results[0].error_kind is None
        assert results[1].error_kind == "AuthenticatorExpired"
        assert results[2].error_kind == "AddressMismatch"

    def test_metrics_count_outcomes(self, verifier, jobs):
        verifier.verify_many(jobs)
        stats = verifier.metrics.get_stats()

        assert stats["success"] == 1
        assert stats["AuthenticatorExpired"] == 1
        assert stats["AddressMismatch"] == 1
        assert stats["duration_count"] == 3
        assert stats["success_rate"] == pytest.approx(1 / 3)

    def test_empty_batch(self, verifier):
        assert verifier.verify_many([]) == []

    def test_requires_authority(self, monkeypatch):
        monkeypatch.delenv("OPENID_AUTH_TRUSTED_AUTHORITY", raising=False)
        with pytest.raises(ConfigurationError):
            BatchVerifier()

    def test_authority_from_environment(self, bundle, jobs, monkeypatch):
        monkeypatch.setenv("OPENID_AUTH_TRUSTED_AUTHORITY", bundle.authority.to_bytes().hex())
        with BatchVerifier(max_workers=1) as verifier:
            assert verifier.verify(jobs[0]).is_valid


class TestAsyncBatchVerifier:
    """Tests for the asyncio wrappers."""

    @pytest.mark.asyncio
    async def test_averify_many(self, bundle, jobs):
        async with BatchVerifier(trusted_authority=bundle.authority) as verifier:
            results = await verifier.averify_many(jobs)

        assert [r.is_valid for r in results] == [True, False, False]
        assert [r.job_index for r in results] == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_averify_single(self, verifier, jobs):
        result = await verifier.averify(jobs[1], job_index=7)
        assert result.job_index == 7
        assert result.error_kind == "AuthenticatorExpired"


class TestVerifierMetrics:
    def test_empty_stats(self):
        assert VerifierMetrics().get_stats() == {}

    def test_timer_records_duration(self):
        metrics = VerifierMetrics(namespace="timer_test")
        with metrics.verification_timer():
            pass
        stats = metrics.get_stats()
        assert stats["duration_count"] == 1
        assert stats["duration_max"] >= 0

    def test_prometheus_export(self):
        metrics = VerifierMetrics(namespace="export_test")
        metrics.record_outcome("success")
        metrics.record_outcome("ProofInvalid")

        text = metrics.get_prometheus_metrics().decode()
        assert 'export_test_verifications_total{outcome="success"} 1.0' in text
        assert 'export_test_verifications_total{outcome="ProofInvalid"} 1.0' in text
