"""
Account registration and login rules.

AccountService validates candidates and delegates persistence to the
store functions in storage.py. It holds nothing but the session handed
to it.
"""

import logging

from sqlalchemy.orm import Session

from social_api import storage
from social_api.results import FailureReason, ServiceResult
from social_api.schemas import AccountCredentials, AccountRecord
from social_api.utils import is_blank

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 4


class AccountService:

    def __init__(self, db: Session):
        self.db = db

    def register_user_account(self, candidate: AccountCredentials) -> ServiceResult[AccountRecord]:
        """
        Register a new account.

        Checks run in order and stop at the first failure, so the username
        lookup only happens for structurally valid candidates:
        1. username is not blank
        2. password has at least MIN_PASSWORD_LENGTH characters
        3. username is not already taken

        Returns:
            ServiceResult holding the persisted account (with account_id),
            or the reason registration was refused.
        """
        if is_blank(candidate.username):
            logger.info("Registration rejected: blank username")
            return ServiceResult.fail(FailureReason.VALIDATION_FAILED, "username must not be blank")

        if candidate.password is None or len(candidate.password) < MIN_PASSWORD_LENGTH:
            logger.info(f"Registration rejected for '{candidate.username}': password too short")
            return ServiceResult.fail(
                FailureReason.VALIDATION_FAILED,
                f"password must be at least {MIN_PASSWORD_LENGTH} characters",
            )

        if storage.username_exists(self.db, candidate.username):
            logger.info(f"Registration rejected: username '{candidate.username}' already exists")
            return ServiceResult.fail(FailureReason.CONFLICT, "username already exists")

        try:
            account = storage.insert_account(self.db, candidate.username, candidate.password)
        except storage.ConstraintViolation:
            # Lost a race with a concurrent registration of the same username
            return ServiceResult.fail(FailureReason.CONFLICT, "username already exists")
        except storage.StorageError:
            return ServiceResult.fail(FailureReason.STORAGE_FAULT, "account insertion failed")

        logger.info(f"Registered account {account.account_id} for '{account.username}'")
        return ServiceResult.succeed(account)

    def login_user_account(self, credentials: AccountCredentials) -> ServiceResult[AccountRecord]:
        """Return the account matching both username and password exactly."""
        account = storage.find_account_by_credentials(self.db, credentials.username, credentials.password)
        if account is None:
            return ServiceResult.fail(FailureReason.NOT_FOUND, "no account matches these credentials")
        return ServiceResult.succeed(account)
