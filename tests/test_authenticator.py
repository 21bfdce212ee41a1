"""Tests for the binary accept/reject authenticator."""

import asyncio

import pytest

from payments_ledger.auth import Authenticator
from payments_ledger.errors import AuthenticationFailedError
from payments_ledger.models import AuditEventType

from tests.doubles import FAST_ITERATIONS


@pytest.fixture
def authenticator(directory, audit_logger) -> Authenticator:
    return Authenticator(directory, audit_logger=audit_logger, iterations=FAST_ITERATIONS)


class TestAuthenticate:

    def test_correct_password_accepted(self, authenticator):
        assert asyncio.run(authenticator.authenticate(1234, "senha1234")) is True

    def test_wrong_password_rejected(self, authenticator):
        assert asyncio.run(authenticator.authenticate(1234, "wrong")) is False

    def test_unknown_account_rejected(self, authenticator):
        assert asyncio.run(authenticator.authenticate(99999, "anything")) is False

    def test_password_is_case_sensitive(self, authenticator):
        assert asyncio.run(authenticator.authenticate(1234, "SENHA1234")) is False

    def test_other_accounts_password_rejected(self, authenticator):
        assert asyncio.run(authenticator.authenticate(1234, "senha2345")) is False

    def test_failures_are_audited(self, authenticator, audit_logger):
        asyncio.run(authenticator.authenticate(99999, "anything"))
        asyncio.run(authenticator.authenticate(1234, "wrong"))

        failed = [e for e in audit_logger.events if e.event_type == AuditEventType.LOGIN_FAILED]
        assert [e.account_id for e in failed] == [99999, 1234]
        # Unknown id and wrong password read the same
        assert failed[0].description.replace("99999", "X") == failed[1].description.replace("1234", "X")


class TestLogin:

    def test_login_returns_session_for_account(self, authenticator, audit_logger):
        session = asyncio.run(authenticator.login(2345, "senha2345"))
        assert session.account_id == 2345

        succeeded = [e for e in audit_logger.events if e.event_type == AuditEventType.LOGIN_SUCCEEDED]
        assert succeeded[-1].correlation_id == session.session_id

    def test_unknown_id_and_wrong_password_are_indistinguishable(self, authenticator):
        with pytest.raises(AuthenticationFailedError) as unknown:
            asyncio.run(authenticator.login(99999, "anything"))
        with pytest.raises(AuthenticationFailedError) as wrong:
            asyncio.run(authenticator.login(1234, "wrong"))
        assert str(unknown.value) == str(wrong.value)

    def test_check_does_not_audit(self, authenticator, audit_logger):
        assert authenticator.check(1234, "senha1234") is True
        assert audit_logger.events == ()
