"""
Account Manager

Registers and authenticates users against the record store and owns
the process-wide "current session" pointer.

Credentials are opaque strings compared for equality. There is no
hashing here; hardening authentication is out of scope for a
single-user personal ledger.
"""

from typing import Optional

import structlog
from pydantic import ValidationError

from mali.audit import AuditLogger
from mali.models.ledger import Account, Session
from mali.services.storage import Collection, RecordStoreInterface


CURRENT_SESSION_KEY = "current"

logger = structlog.get_logger(__name__)


class AccountError(Exception):
    """Base exception for account operations."""
    pass


class DuplicateUsernameError(AccountError):
    """An account with this username already exists."""

    def __init__(self, username: str):
        self.username = username
        super().__init__(f"Username already exists: {username}")


class InvalidCredentialsError(AccountError):
    """No account matches the given username and credential."""

    def __init__(self):
        super().__init__("Invalid username or password")


class InvalidAccountDataError(AccountError):
    """Registration data failed validation (e.g. blank username)."""
    pass


class AccountManager:
    """
    Registration, login and the current session.

    The session record holds only the account ID and is resolved
    against the accounts collection on every read.
    """

    def __init__(
        self,
        store: RecordStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger

    def _find_by_username(self, username: str) -> Optional[Account]:
        for record in self._store.list(Collection.ACCOUNTS):
            if record.get("username") == username:
                return Account(**record)
        return None

    def _start_session(self, account: Account) -> None:
        session = Session(account_id=account.id)
        self._store.put(
            Collection.SESSIONS,
            CURRENT_SESSION_KEY,
            session.model_dump(mode="json"),
        )

    def get_account(self, account_id: str) -> Optional[Account]:
        record = self._store.get(Collection.ACCOUNTS, account_id)
        return Account(**record) if record else None

    def register(self, username: str, credential: str, display_name: str) -> Account:
        """
        Create an account and make it the current session.

        Raises:
            DuplicateUsernameError: If the username is taken (case-sensitive)
            InvalidAccountDataError: If any field is blank
        """
        if not username or not credential or not (display_name or "").strip():
            raise InvalidAccountDataError(
                "Username, password and name are all required"
            )

        if self._find_by_username(username) is not None:
            logger.info("register_rejected", reason="duplicate_username")
            raise DuplicateUsernameError(username)

        try:
            account = Account(
                username=username,
                credential=credential,
                display_name=display_name.strip(),
            )
        except ValidationError as e:
            raise InvalidAccountDataError(str(e)) from e

        self._store.put(Collection.ACCOUNTS, account.id, account.model_dump(mode="json"))
        self._start_session(account)

        if self._audit_logger:
            self._audit_logger.log_account_registered(account)

        return account

    def login(self, username: str, credential: str) -> Account:
        """
        Authenticate and make the account the current session.

        On failure the existing session, if any, is left untouched.

        Raises:
            InvalidCredentialsError: If no account matches both fields exactly
        """
        account = self._find_by_username(username)
        if account is None or account.credential != credential:
            if self._audit_logger:
                self._audit_logger.log_login_failed(username)
            raise InvalidCredentialsError()

        self._start_session(account)

        if self._audit_logger:
            self._audit_logger.log_login(account)

        return account

    def logout(self) -> None:
        """Clear the current session. Safe to call when logged out."""
        session = self._store.get(Collection.SESSIONS, CURRENT_SESSION_KEY)
        self._store.delete(Collection.SESSIONS, CURRENT_SESSION_KEY)

        if self._audit_logger and session:
            self._audit_logger.log_logout(session.get("account_id"))

    def current_session(self) -> Optional[Account]:
        """The logged-in account, or None."""
        record = self._store.get(Collection.SESSIONS, CURRENT_SESSION_KEY)
        if not record:
            return None

        session = Session(**record)
        account = self.get_account(session.account_id)
        if account is None:
            # Session points at an account that no longer exists
            logger.warning("stale_session", account_id=session.account_id)
        return account
