"""
Message rules.

MessageService validates message text and authorship before delegating to
the store. Delete and update fetch the row first and then mutate it in a
separate statement; a concurrent delete between the two makes the call
report NOT_FOUND even though the row briefly existed.
"""

import logging
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from social_api import storage
from social_api.results import FailureReason, ServiceResult
from social_api.schemas import MessageCreate, MessageRecord
from social_api.utils import current_epoch, is_blank

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 255


def validate_message_text(message_text: Optional[str]) -> Optional[str]:
    """Return the rule the text breaks, or None if it is acceptable."""
    if is_blank(message_text):
        return "message_text must not be blank"
    if len(message_text) > MAX_MESSAGE_LENGTH:
        return f"message_text must be at most {MAX_MESSAGE_LENGTH} characters"
    return None


class MessageService:

    def __init__(self, db: Session, clock: Callable[[], int] = current_epoch):
        self.db = db
        self.clock = clock

    def create_new_message(self, candidate: MessageCreate) -> ServiceResult[MessageRecord]:
        """
        Create a message stamped with the current epoch time.

        Requires non-blank text of at most MAX_MESSAGE_LENGTH characters and
        a posted_by that references an existing account.
        """
        problem = validate_message_text(candidate.message_text)
        if problem:
            logger.info(f"Message rejected: {problem}")
            return ServiceResult.fail(FailureReason.VALIDATION_FAILED, problem)

        if candidate.posted_by is None or not storage.account_exists(self.db, candidate.posted_by):
            logger.info(f"Message rejected: unknown account {candidate.posted_by}")
            return ServiceResult.fail(FailureReason.VALIDATION_FAILED, "posted_by must reference an existing account")

        try:
            message = storage.insert_message(
                self.db,
                posted_by=candidate.posted_by,
                message_text=candidate.message_text,
                time_posted_epoch=self.clock(),
            )
        except storage.StorageError:
            return ServiceResult.fail(FailureReason.STORAGE_FAULT, "message insertion failed")

        return ServiceResult.succeed(message)

    def get_all_messages(self) -> List[MessageRecord]:
        return storage.list_all_messages(self.db)

    def get_message_by_id(self, message_id: int) -> ServiceResult[MessageRecord]:
        message = storage.get_message(self.db, message_id)
        if message is None:
            return ServiceResult.fail(FailureReason.NOT_FOUND, f"message {message_id} not found")
        return ServiceResult.succeed(message)

    def delete_message_by_id(self, message_id: int) -> ServiceResult[MessageRecord]:
        """
        Delete a message and return the snapshot taken just before deletion.

        NOT_FOUND if the message did not exist or was already gone by the
        time the delete ran.
        """
        message = storage.get_message(self.db, message_id)
        if message is None:
            return ServiceResult.fail(FailureReason.NOT_FOUND, f"message {message_id} not found")

        try:
            removed = storage.delete_message(self.db, message_id)
        except storage.StorageError:
            return ServiceResult.fail(FailureReason.STORAGE_FAULT, f"failed to delete message {message_id}")

        if not removed:
            logger.warning(f"Message {message_id} disappeared before it could be deleted")
            return ServiceResult.fail(FailureReason.NOT_FOUND, f"message {message_id} not found")

        return ServiceResult.succeed(message)

    def update_message_by_id(self, message_id: int, new_text: Optional[str]) -> ServiceResult[MessageRecord]:
        """
        Replace a message's text.

        The text is validated before the store is touched. The returned
        record is the pre-update snapshot with only message_text replaced;
        it is not re-read from the store.
        """
        problem = validate_message_text(new_text)
        if problem:
            logger.info(f"Update of message {message_id} rejected: {problem}")
            return ServiceResult.fail(FailureReason.VALIDATION_FAILED, problem)

        message = storage.get_message(self.db, message_id)
        if message is None:
            return ServiceResult.fail(FailureReason.NOT_FOUND, f"message {message_id} not found")

        try:
            updated = storage.update_message_text(self.db, message_id, new_text)
        except storage.StorageError:
            return ServiceResult.fail(FailureReason.STORAGE_FAULT, f"failed to update message {message_id}")

        if not updated:
            logger.warning(f"Message {message_id} disappeared before it could be updated")
            return ServiceResult.fail(FailureReason.NOT_FOUND, f"message {message_id} not found")

        return ServiceResult.succeed(message.model_copy(update={"message_text": new_text}))

    def get_all_messages_by_user(self, account_id: int) -> List[MessageRecord]:
        """Messages posted by account_id; empty for unknown accounts."""
        return storage.list_messages_by_account(self.db, account_id)
