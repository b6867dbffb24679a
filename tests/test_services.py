"""
Tests for AccountService and MessageService against a real session.

These assert on the failure reason that the HTTP layer collapses into a
bare status code.
"""

import pytest

from social_api import storage
from social_api.account_service import AccountService
from social_api.message_service import MessageService
from social_api.results import FailureReason
from social_api.schemas import AccountCredentials, MessageCreate


FIXED_EPOCH = 1700000000


@pytest.fixture
def accounts(db):
    return AccountService(db)


@pytest.fixture
def messages(db):
    return MessageService(db, clock=lambda: FIXED_EPOCH)


@pytest.fixture
def alice(accounts):
    result = accounts.register_user_account(AccountCredentials(username="alice", password="pass1"))
    assert result.ok
    return result.value


class TestRegisterUserAccount:
    """Test AccountService.register_user_account."""

    def test_success(self, accounts):
        result = accounts.register_user_account(AccountCredentials(username="alice", password="pass1"))

        assert result.ok
        assert result.value.account_id is not None
        assert result.value.username == "alice"
        assert result.value.password == "pass1"

    @pytest.mark.parametrize("username", [None, "", " \t "])
    def test_blank_username(self, accounts, username):
        result = accounts.register_user_account(AccountCredentials(username=username, password="pass1"))

        assert result.reason == FailureReason.VALIDATION_FAILED
        assert result.value is None

    @pytest.mark.parametrize("password", [None, "", "abc"])
    def test_short_password(self, accounts, password):
        result = accounts.register_user_account(AccountCredentials(username="alice", password=password))

        assert result.reason == FailureReason.VALIDATION_FAILED

    def test_structural_checks_skip_store_lookup(self, accounts, monkeypatch):
        """Test a blank username is rejected without asking the store."""
        def fail_lookup(*args, **kwargs):
            raise AssertionError("store should not be consulted")

        monkeypatch.setattr(storage, "username_exists", fail_lookup)

        result = accounts.register_user_account(AccountCredentials(username="", password="pass1"))

        assert result.reason == FailureReason.VALIDATION_FAILED

    def test_duplicate_username(self, accounts, alice):
        result = accounts.register_user_account(AccountCredentials(username="alice", password="other"))

        assert result.reason == FailureReason.CONFLICT

    def test_concurrent_duplicate_caught_by_store(self, accounts, alice, monkeypatch):
        """Test the unique constraint rejects a duplicate that slipped past the lookup."""
        monkeypatch.setattr(storage, "username_exists", lambda db, username: False)

        result = accounts.register_user_account(AccountCredentials(username="alice", password="other"))

        assert result.reason == FailureReason.CONFLICT

    def test_storage_fault(self, accounts, monkeypatch):
        def broken_insert(*args, **kwargs):
            raise storage.StorageError("disk full")

        monkeypatch.setattr(storage, "insert_account", broken_insert)

        result = accounts.register_user_account(AccountCredentials(username="alice", password="pass1"))

        assert result.reason == FailureReason.STORAGE_FAULT


class TestLoginUserAccount:
    """Test AccountService.login_user_account."""

    def test_success_returns_full_record(self, accounts, alice):
        result = accounts.login_user_account(AccountCredentials(username="alice", password="pass1"))

        assert result.ok
        assert result.value == alice

    @pytest.mark.parametrize("username,password", [
        ("alice", "wrong"),
        ("bob", "pass1"),
        ("", "pass1"),
        (None, None),
    ])
    def test_no_match(self, accounts, alice, username, password):
        result = accounts.login_user_account(AccountCredentials(username=username, password=password))

        assert result.reason == FailureReason.NOT_FOUND


class TestCreateNewMessage:
    """Test MessageService.create_new_message."""

    def test_success_sets_epoch(self, messages, alice):
        result = messages.create_new_message(MessageCreate(posted_by=alice.account_id, message_text="hi"))

        assert result.ok
        assert result.value.message_id is not None
        assert result.value.posted_by == alice.account_id
        assert result.value.time_posted_epoch == FIXED_EPOCH

    @pytest.mark.parametrize("text", [None, "", "   ", "x" * 256])
    def test_invalid_text(self, messages, alice, text):
        result = messages.create_new_message(MessageCreate(posted_by=alice.account_id, message_text=text))

        assert result.reason == FailureReason.VALIDATION_FAILED

    @pytest.mark.parametrize("length", [1, 255])
    def test_boundary_lengths(self, messages, alice, length):
        result = messages.create_new_message(MessageCreate(posted_by=alice.account_id, message_text="x" * length))

        assert result.ok

    def test_unknown_author(self, messages, alice):
        result = messages.create_new_message(MessageCreate(posted_by=alice.account_id + 1, message_text="hi"))

        assert result.reason == FailureReason.VALIDATION_FAILED
        assert messages.get_all_messages() == []


class TestMessageQueries:
    """Test the read operations of MessageService."""

    def test_get_all_messages_empty(self, messages):
        assert messages.get_all_messages() == []

    def test_get_all_messages(self, messages, alice):
        created = [
            messages.create_new_message(MessageCreate(posted_by=alice.account_id, message_text=text)).value
            for text in ("one", "two")
        ]

        assert messages.get_all_messages() == created

    def test_get_message_by_id_missing(self, messages):
        result = messages.get_message_by_id(42)

        assert result.reason == FailureReason.NOT_FOUND

    def test_messages_by_user(self, messages, accounts, alice):
        bob = accounts.register_user_account(AccountCredentials(username="bob", password="pass2")).value
        for posted_by in (alice.account_id, bob.account_id, alice.account_id):
            messages.create_new_message(MessageCreate(posted_by=posted_by, message_text="hey"))

        alice_messages = messages.get_all_messages_by_user(alice.account_id)

        assert len(alice_messages) == 2
        assert all(m.posted_by == alice.account_id for m in alice_messages)

    def test_messages_by_unknown_user(self, messages):
        assert messages.get_all_messages_by_user(999) == []


class TestDeleteMessageById:
    """Test MessageService.delete_message_by_id."""

    def test_delete_returns_snapshot(self, messages, alice):
        created = messages.create_new_message(MessageCreate(posted_by=alice.account_id, message_text="bye")).value

        result = messages.delete_message_by_id(created.message_id)

        assert result.ok
        assert result.value == created
        assert messages.get_message_by_id(created.message_id).reason == FailureReason.NOT_FOUND

    def test_delete_missing_leaves_store_unchanged(self, messages, alice):
        created = messages.create_new_message(MessageCreate(posted_by=alice.account_id, message_text="stay")).value

        result = messages.delete_message_by_id(created.message_id + 1)

        assert result.reason == FailureReason.NOT_FOUND
        assert messages.get_all_messages() == [created]

    def test_row_vanishes_between_fetch_and_delete(self, messages, alice, monkeypatch):
        created = messages.create_new_message(MessageCreate(posted_by=alice.account_id, message_text="bye")).value
        monkeypatch.setattr(storage, "delete_message", lambda db, message_id: False)

        result = messages.delete_message_by_id(created.message_id)

        assert result.reason == FailureReason.NOT_FOUND


class TestUpdateMessageById:
    """Test MessageService.update_message_by_id."""

    def test_update_keeps_identity_fields(self, messages, alice):
        created = messages.create_new_message(MessageCreate(posted_by=alice.account_id, message_text="hi")).value

        result = messages.update_message_by_id(created.message_id, "hi!")

        assert result.ok
        assert result.value.message_text == "hi!"
        assert result.value.message_id == created.message_id
        assert result.value.posted_by == created.posted_by
        assert result.value.time_posted_epoch == created.time_posted_epoch
        assert messages.get_message_by_id(created.message_id).value.message_text == "hi!"

    @pytest.mark.parametrize("text", [None, "", "x" * 256])
    def test_invalid_text_leaves_store_unchanged(self, messages, alice, text):
        created = messages.create_new_message(MessageCreate(posted_by=alice.account_id, message_text="hi")).value

        result = messages.update_message_by_id(created.message_id, text)

        assert result.reason == FailureReason.VALIDATION_FAILED
        assert messages.get_message_by_id(created.message_id).value.message_text == "hi"

    def test_invalid_text_skips_store(self, messages, monkeypatch):
        def fail_fetch(*args, **kwargs):
            raise AssertionError("store should not be consulted")

        monkeypatch.setattr(storage, "get_message", fail_fetch)

        result = messages.update_message_by_id(1, "")

        assert result.reason == FailureReason.VALIDATION_FAILED

    def test_update_missing(self, messages):
        result = messages.update_message_by_id(42, "hello")

        assert result.reason == FailureReason.NOT_FOUND

    def test_storage_fault(self, messages, alice, monkeypatch):
        created = messages.create_new_message(MessageCreate(posted_by=alice.account_id, message_text="hi")).value

        def broken_update(*args, **kwargs):
            raise storage.StorageError("locked")

        monkeypatch.setattr(storage, "update_message_text", broken_update)

        result = messages.update_message_by_id(created.message_id, "hello")

        assert result.reason == FailureReason.STORAGE_FAULT
