"""
Demo Seed Data

Six accounts used when the persistence store has nothing yet.
Account 0 is the house account and has an unlimited balance.
"""

from decimal import Decimal

from payments_ledger.auth.passwords import DEFAULT_ROUNDS, hash_password
from payments_ledger.models.account import HOUSE_ACCOUNT_ID, UNLIMITED_BALANCE, Account


# (id, name, initial balance, password)
SEED_ACCOUNTS: tuple[tuple[int, str, Decimal, str], ...] = (
    (1234, "Mariana Silva", Decimal("1500.00"), "senha1234"),
    (2345, "Samuel Campos", Decimal("2300.00"), "senha2345"),
    (40800, "Lucas Almeida", Decimal("980.50"), "senha40800"),
    (3208, "Beatriz Rocha", Decimal("3200.00"), "senha3208"),
    (3847, "Rafael Souza", Decimal("750.25"), "senha3847"),
    (HOUSE_ACCOUNT_ID, "Conta da Casa", UNLIMITED_BALANCE, "senha0"),
)


def seed_accounts(iterations: int = DEFAULT_ROUNDS) -> list[Account]:
    """Build the demo accounts, hashing their passwords."""
    return [
        Account.opened(
            id=account_id,
            name=name,
            initial_balance=balance,
            password_hash=hash_password(password, iterations=iterations),
        )
        for account_id, name, balance, password in SEED_ACCOUNTS
    ]
