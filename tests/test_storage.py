"""
Tests for the Messages table and MessageStore.
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from unittest.mock import Mock

import pytest
from sqlalchemy import inspect
from sqlalchemy.exc import OperationalError

from app.models import Message
from app.storage import Base, MessageStore, StorageError, engine


def make_message(name="WorkGroup", content="Meeting at 9am") -> Message:
    return Message(
        group_or_user_name=name,
        message_content=content,
        received_at=datetime(2025, 7, 13, 10, 30, 0),
    )


class TestSchema:
    """Test the Messages table definition."""

    def test_columns(self, tables):
        columns = {c["name"]: c for c in inspect(engine).get_columns("Messages")}

        assert set(columns) == {"Id", "GroupOrUserName", "MessageContent", "ReceivedDateTime"}
        assert columns["GroupOrUserName"]["type"].length == 500
        assert not columns["GroupOrUserName"]["nullable"]
        assert not columns["MessageContent"]["nullable"]
        assert not columns["ReceivedDateTime"]["nullable"]

    def test_indexes(self, tables):
        indexes = {i["name"]: i for i in inspect(engine).get_indexes("Messages")}

        assert indexes["IX_Messages_ReceivedDateTime"]["column_names"] == ["ReceivedDateTime"]
        assert indexes["IX_Messages_GroupOrUserName"]["column_names"] == ["GroupOrUserName"]
        assert not any(index["unique"] for index in indexes.values())

    def test_indexes_visible_after_schema_recreated(self, tables, store):
        # Check out pooled connections, then rebuild the schema the way the
        # tables fixture does between tests
        store.insert(make_message())
        store.db.close()
        with ThreadPoolExecutor(max_workers=4) as pool:
            list(pool.map(lambda _: inspect(engine).get_indexes("Messages"), range(4)))

        Base.metadata.drop_all(bind=engine)
        engine.dispose()
        Base.metadata.create_all(bind=engine)

        index_names = {i["name"] for i in inspect(engine).get_indexes("Messages")}
        assert {"IX_Messages_ReceivedDateTime", "IX_Messages_GroupOrUserName"} <= index_names


class TestInsert:
    """Test MessageStore.insert."""

    def test_insert_returns_sequential_ids(self, store):
        ids = [store.insert(make_message(content=f"message {i}")) for i in range(3)]

        assert ids == [1, 2, 3]

    def test_duplicate_content_is_allowed(self, store):
        first = store.insert(make_message())
        second = store.insert(make_message())

        assert first != second
        assert store.count() == 2

    def test_round_trip_unicode(self, store):
        name = "Ünïcödé グループ 🚀"
        content = "多字节 ✓ ∑ 😊   tab\tnewline\n"

        message_id = store.insert(make_message(name=name, content=content))
        store.db.expire_all()
        stored = store.get(message_id)

        assert stored.group_or_user_name == name
        assert stored.message_content == content

    def test_get_missing_returns_none(self, store):
        assert store.get(12345) is None

    def test_missing_required_field_raises_storage_error(self, store):
        message = Message(group_or_user_name="WorkGroup", message_content=None, received_at=datetime.now())

        with pytest.raises(StorageError):
            store.insert(message)

        assert store.count() == 0

    def test_store_usable_after_failure(self, store):
        with pytest.raises(StorageError):
            store.insert(Message(group_or_user_name=None, message_content="x", received_at=datetime.now()))

        assert store.insert(make_message()) > 0
        assert store.count() == 1

    def test_commit_failure_rolls_back(self):
        db = Mock()
        db.commit.side_effect = OperationalError("INSERT", {}, Exception("database is locked"))

        with pytest.raises(StorageError) as exc_info:
            MessageStore(db).insert(make_message())

        db.rollback.assert_called_once()
        assert isinstance(exc_info.value.__cause__, OperationalError)
