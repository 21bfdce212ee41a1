"""Pytest configuration and fixtures."""

import asyncio

import pytest

from payments_ledger.config import LedgerSettings
from payments_ledger.audit import AuditLogger
from payments_ledger.ledger import AccountDirectory, seed_accounts
from payments_ledger.service import PaymentsService
from payments_ledger.services.notifications import InMemoryNotifier
from payments_ledger.services.storage import InMemoryPersistenceStore

from tests.doubles import FAST_ITERATIONS


@pytest.fixture
def settings() -> LedgerSettings:
    """Ledger settings with cheap hashing and no retry waits."""
    return LedgerSettings(
        transfer_timeout_seconds=1.0,
        persistence_retry_attempts=3,
        retry_wait_multiplier=0,
        retry_wait_min_seconds=0,
        retry_wait_max_seconds=0,
        password_hash_iterations=FAST_ITERATIONS,
    )


@pytest.fixture
def seeded_accounts():
    return seed_accounts(iterations=FAST_ITERATIONS)


@pytest.fixture
def directory(seeded_accounts) -> AccountDirectory:
    return AccountDirectory(seeded_accounts)


@pytest.fixture
def audit_logger() -> AuditLogger:
    return AuditLogger()


@pytest.fixture
def store() -> InMemoryPersistenceStore:
    return InMemoryPersistenceStore()


@pytest.fixture
def notifier() -> InMemoryNotifier:
    return InMemoryNotifier()


@pytest.fixture
def service(store, notifier, audit_logger, settings) -> PaymentsService:
    """A loaded service over in-memory storage with the demo accounts."""
    svc = PaymentsService(
        store=store,
        notifier=notifier,
        audit_logger=audit_logger,
        settings=settings,
    )
    asyncio.run(svc.load())
    return svc
