"""Authentication package."""

from payments_ledger.auth.authenticator import Authenticator
from payments_ledger.auth.passwords import hash_password, password_context, verify_password

__all__ = ["Authenticator", "hash_password", "password_context", "verify_password"]
