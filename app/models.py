"""
SQLAlchemy ORM models for database tables.

This module contains database table definitions using SQLAlchemy.
For Pydantic request/response schemas, see schemas.py.
"""

from sqlalchemy import Column, DateTime, Index, Integer, String, Text

from app.storage import Base


GROUP_OR_USER_NAME_MAX_LENGTH = 500


class Message(Base):
    """
    SQLAlchemy model for a collected chat message.

    Table: Messages
    Primary Key: Id, assigned by the database on insert and never reused
    """
    __tablename__ = "Messages"

    id = Column("Id", Integer, primary_key=True, autoincrement=True)
    group_or_user_name = Column(
        "GroupOrUserName", String(GROUP_OR_USER_NAME_MAX_LENGTH), nullable=False
    )
    message_content = Column("MessageContent", Text, nullable=False)
    received_at = Column("ReceivedDateTime", DateTime, nullable=False)

    __table_args__ = (
        Index("IX_Messages_ReceivedDateTime", "ReceivedDateTime"),
        Index("IX_Messages_GroupOrUserName", "GroupOrUserName"),
        # AUTOINCREMENT keeps SQLite from handing out the id of a removed max row
        {"sqlite_autoincrement": True},
    )

    def __repr__(self) -> str:
        return f"<Message id={self.id} from={self.group_or_user_name!r}>"
