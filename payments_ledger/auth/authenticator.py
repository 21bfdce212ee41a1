"""
Authenticator

Binary accept/reject check of an account id and password against the
account directory. An unknown id and a wrong password produce the same
outcome, and an unknown id still pays for one hash verification so the
response time does not reveal which ids exist.

No lockout and no rate limiting; every attempt is audited instead.
"""

from typing import Optional

from payments_ledger.audit import AuditLogger
from payments_ledger.auth.passwords import DEFAULT_ROUNDS, password_context, verify_password
from payments_ledger.errors import AuthenticationFailedError
from payments_ledger.ledger.directory import AccountDirectory
from payments_ledger.models.transfer import Session


class Authenticator:
    """Checks credentials against the account directory."""

    def __init__(
        self,
        directory: AccountDirectory,
        audit_logger: Optional[AuditLogger] = None,
        iterations: int = DEFAULT_ROUNDS,
    ):
        self._directory = directory
        self._audit_logger = audit_logger
        # Same cost as a real check; used when the id is unknown
        self._context = password_context(iterations)

    def check(self, account_id: int, password: str) -> bool:
        """Synchronous credential check, without auditing."""
        account = self._directory.find(account_id)
        if account is None:
            self._context.dummy_verify()
            return False
        return verify_password(password, account.password_hash)

    async def authenticate(self, account_id: int, password: str) -> bool:
        """
        True iff the account exists and the password matches.

        Rejections are audited; `login` audits acceptances.
        """
        accepted = self.check(account_id, password)
        if not accepted and self._audit_logger:
            await self._audit_logger.log_login_failed(account_id)
        return accepted

    async def login(self, account_id: int, password: str) -> Session:
        """
        Authenticate and open a session.

        Raises:
            AuthenticationFailedError: unknown id or wrong password
        """
        if not await self.authenticate(account_id, password):
            raise AuthenticationFailedError()

        session = Session(account_id=account_id)
        if self._audit_logger:
            await self._audit_logger.log_login_succeeded(account_id, session.session_id)
        return session
