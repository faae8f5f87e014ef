"""Accounts package."""

from mali.accounts.manager import (
    AccountError,
    AccountManager,
    DuplicateUsernameError,
    InvalidAccountDataError,
    InvalidCredentialsError,
)

__all__ = [
    "AccountError",
    "AccountManager",
    "DuplicateUsernameError",
    "InvalidAccountDataError",
    "InvalidCredentialsError",
]
