"""
SQLAlchemy ORM models for database tables.

This module contains database table definitions using SQLAlchemy.
For Pydantic request/response schemas, see schemas.py.
"""

from sqlalchemy import BigInteger, Column, ForeignKey, Integer, String

from social_api.storage import Base


class Account(Base):
    """
    SQLAlchemy model for registered user accounts.

    Table: account
    Primary Key: account_id (store-assigned)
    Unique: username, so concurrent registrations cannot both succeed
    """
    __tablename__ = "account"

    account_id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(255), nullable=False, unique=True, index=True)
    password = Column(String(255), nullable=False)  # Plain text


class Message(Base):
    """
    SQLAlchemy model for messages posted by accounts.

    Table: message
    Primary Key: message_id (store-assigned)
    """
    __tablename__ = "message"

    message_id = Column(Integer, primary_key=True, autoincrement=True)
    posted_by = Column(Integer, ForeignKey("account.account_id"), nullable=False, index=True)
    message_text = Column(String(255), nullable=False)
    time_posted_epoch = Column(BigInteger, nullable=False)  # Epoch seconds
