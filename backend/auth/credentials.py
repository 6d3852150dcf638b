"""Username/password registration and verification."""

import logging

from passlib.exc import PasswordValueError
from passlib.hash import bcrypt

from models.records import Account
from models.store import AccountStore

logger = logging.getLogger(__name__)

# Verified against when the username is unknown, so both failure paths
# cost one bcrypt comparison.
_DUMMY_HASH = bcrypt.hash("not-a-real-password")


class AccountExists(Exception):
    """Raised when registering a username that is already taken."""


class InvalidPassword(ValueError):
    """Raised when a password cannot be hashed, e.g. it contains a NUL byte."""


class AuthFailed(Exception):
    """Raised for an unknown username or a wrong password alike."""


class CredentialStore:
    def __init__(self, accounts: AccountStore):
        self._accounts = accounts

    def register(self, username: str, password: str) -> Account:
        """Hash ``password`` and create the account.

        Raises:
            AccountExists: If ``username`` is already registered.
            InvalidPassword: If the hasher refuses ``password``.
        """
        if username in self._accounts:
            raise AccountExists(username)
        try:
            password_hash = bcrypt.hash(password)
        except PasswordValueError as exc:
            raise InvalidPassword(str(exc)) from exc
        account = Account(username=username, password_hash=password_hash)
        if not self._accounts.add(account):
            raise AccountExists(username)
        logger.info("Registered account %s", username)
        return account

    def verify(self, username: str, password: str) -> str:
        """Return ``username`` if ``password`` matches its stored hash.

        Raises:
            AuthFailed: Without saying which of username or password was wrong.
        """
        account = self._accounts.get(username)
        stored_hash = account.password_hash if account is not None else _DUMMY_HASH
        try:
            matched = bcrypt.verify(password, stored_hash)
        except ValueError:
            # passlib rejects some secrets outright, e.g. ones containing NUL
            matched = False
        if account is None or not matched:
            raise AuthFailed()
        return account.username
