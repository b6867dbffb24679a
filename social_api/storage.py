import logging
from contextlib import contextmanager
from typing import Generator, Iterator, List, Optional

from sqlalchemy import create_engine, event, text, inspect
from sqlalchemy.orm import sessionmaker, Session, declarative_base
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from social_api.config import settings
from social_api.schemas import AccountRecord, MessageRecord

logger = logging.getLogger(__name__)

REQUIRED_TABLES = ("account", "message")

# Range of a signed 64-bit INTEGER column
MIN_ROW_ID = -2**63
MAX_ROW_ID = 2**63 - 1

_is_sqlite = settings.DATABASE_URL.startswith("sqlite")

# check_same_thread=False is required for SQLite to work with FastAPI's async
engine = create_engine(
    settings.DATABASE_URL,
    connect_args={"check_same_thread": False} if _is_sqlite else {},
    echo=False,
)

if _is_sqlite:
    @event.listens_for(engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        # SQLite ignores REFERENCES clauses unless enabled per connection
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

# Create SessionLocal class for creating database sessions
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for SQLAlchemy models
Base = declarative_base()


def _storable_id(row_id: int) -> bool:
    """False for ids the database cannot hold, which therefore match no row."""
    return MIN_ROW_ID <= row_id <= MAX_ROW_ID


class StorageError(Exception):
    """A write against the database failed and was rolled back."""


class ConstraintViolation(StorageError):
    """A write was rejected by a database constraint (unique or foreign key)."""


def init_db() -> None:
    """
    Initialize the database by creating all tables.
    Called during application startup.
    """
    logger.debug(f"Initializing database with URL: {settings.DATABASE_URL}")
    try:
        # Import models to register them with Base.metadata
        from social_api.models import Account, Message  # noqa: F401

        logger.debug("Creating database tables...")
        Base.metadata.create_all(bind=engine)
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise


def get_db() -> Generator[Session, None, None]:
    """
    Dependency to get database session.
    Yields a session and ensures it's closed after use.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_db_health() -> bool:
    """
    Check if the database is reachable and schema is applied.

    Returns:
        True if DB is healthy and both tables exist, False otherwise.
    """
    logger.debug("Checking database health...")
    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
            logger.debug("Database connectivity OK")

            existing = set(inspect(db.get_bind()).get_table_names())
            missing = [name for name in REQUIRED_TABLES if name not in existing]
            if missing:
                logger.error(f"Database schema not applied, missing tables: {missing}")
                return False
        logger.debug("Database health check passed")
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False


@contextmanager
def _write(db: Session, action: str) -> Iterator[None]:
    """
    Run a write and commit it.
    Failures are rolled back and re-raised as StorageError.
    """
    try:
        yield
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Constraint violation while trying to {action}: {e.orig}")
        raise ConstraintViolation(str(e.orig)) from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to {action}: {e}")
        raise StorageError(str(e)) from e


# =============================================================================
# Account Repository Functions
# =============================================================================

def username_exists(db: Session, username: str) -> bool:
    """True iff an account with exactly this username is persisted."""
    from social_api.models import Account

    found = db.query(Account.account_id).filter(Account.username == username).first()
    logger.debug(f"Username lookup '{username}': {'exists' if found else 'free'}")
    return found is not None


def insert_account(db: Session, username: str, password: str) -> AccountRecord:
    """
    Persist a new account and return it with its assigned account_id.

    Raises:
        ConstraintViolation: username already taken
        StorageError: any other database failure
    """
    from social_api.models import Account

    logger.info(f"Inserting account: username={username}")
    account = Account(username=username, password=password)
    with _write(db, f"insert account '{username}'"):
        db.add(account)
    db.refresh(account)
    logger.info(f"Account created: account_id={account.account_id}")
    return AccountRecord.model_validate(account)


def find_account_by_credentials(db: Session, username: str, password: str) -> Optional[AccountRecord]:
    """
    Look up the account whose username and password both match exactly.

    Returns:
        AccountRecord if found, None otherwise
    """
    from social_api.models import Account

    account = (
        db.query(Account)
        .filter(Account.username == username, Account.password == password)
        .first()
    )
    logger.info(f"Credential lookup for '{username}': {'matched' if account else 'no match'}")
    return AccountRecord.model_validate(account) if account else None


def account_exists(db: Session, account_id: int) -> bool:
    from social_api.models import Account

    if not _storable_id(account_id):
        return False
    found = db.query(Account.account_id).filter(Account.account_id == account_id).first()
    return found is not None


# =============================================================================
# Message Repository Functions
# =============================================================================

def insert_message(db: Session, posted_by: int, message_text: str, time_posted_epoch: int) -> MessageRecord:
    """
    Persist a new message and return it with its assigned message_id.

    Raises:
        ConstraintViolation: posted_by does not reference an account
        StorageError: any other database failure
    """
    from social_api.models import Message

    logger.info(f"Inserting message: posted_by={posted_by}, length={len(message_text)}")
    message = Message(
        posted_by=posted_by,
        message_text=message_text,
        time_posted_epoch=time_posted_epoch,
    )
    with _write(db, f"insert message for account {posted_by}"):
        db.add(message)
    db.refresh(message)
    logger.info(f"Message created: message_id={message.message_id}")
    return MessageRecord.model_validate(message)


def list_all_messages(db: Session) -> List[MessageRecord]:
    """Return every message in insertion order (message_id ASC)."""
    from social_api.models import Message

    rows = db.query(Message).order_by(Message.message_id.asc()).all()
    logger.debug(f"Retrieved {len(rows)} messages")
    return [MessageRecord.model_validate(row) for row in rows]


def get_message(db: Session, message_id: int) -> Optional[MessageRecord]:
    """
    Retrieve a message by its ID.

    Returns:
        MessageRecord if found, None otherwise
    """
    from social_api.models import Message

    if not _storable_id(message_id):
        return None

    row = db.query(Message).filter(Message.message_id == message_id).first()
    logger.debug(f"Message lookup {message_id}: {'found' if row else 'not found'}")
    return MessageRecord.model_validate(row) if row else None


def delete_message(db: Session, message_id: int) -> bool:
    """
    Delete a message by its ID.

    Returns:
        True iff a row was removed

    Raises:
        StorageError: the delete failed
    """
    from social_api.models import Message

    if not _storable_id(message_id):
        return False

    with _write(db, f"delete message {message_id}"):
        removed = (
            db.query(Message)
            .filter(Message.message_id == message_id)
            .delete(synchronize_session=False)
        )
    logger.info(f"Delete message {message_id}: {removed} row(s) removed")
    return removed > 0


def update_message_text(db: Session, message_id: int, new_text: str) -> bool:
    """
    Replace the text of a message.

    Returns:
        True iff a matching row existed and was modified

    Raises:
        StorageError: the update failed
    """
    from social_api.models import Message

    if not _storable_id(message_id):
        return False

    with _write(db, f"update message {message_id}"):
        changed = (
            db.query(Message)
            .filter(Message.message_id == message_id)
            .update({Message.message_text: new_text}, synchronize_session=False)
        )
    logger.info(f"Update message {message_id}: {changed} row(s) changed")
    return changed > 0


def list_messages_by_account(db: Session, account_id: int) -> List[MessageRecord]:
    """Return the messages posted by one account in insertion order."""
    from social_api.models import Message

    if not _storable_id(account_id):
        return []

    rows = (
        db.query(Message)
        .filter(Message.posted_by == account_id)
        .order_by(Message.message_id.asc())
        .all()
    )
    logger.debug(f"Retrieved {len(rows)} messages for account {account_id}")
    return [MessageRecord.model_validate(row) for row in rows]
