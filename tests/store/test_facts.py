"""Tests for FactStore CRUD operations."""

import random
import uuid
from unittest.mock import patch

import pytest
from cassandra import ConsistencyLevel, WriteTimeout
from cassandra.policies import WriteType
from cassandra.protocol import ServerError

from factstore.config import StoreSettings
from factstore.store import (
    ConsistencyPolicy,
    ConsistencySettings,
    Fact,
    FactStore,
    NotFoundError,
    QueryError,
    SerializationError,
)
from factstore.store.keys import key_timestamp


class TestCreateAndRead:
    def test_read_after_create(self, store: FactStore):
        key = store.create("Cats have 230 bones.", "Cat fact")
        fact = store.read(key)
        assert fact == Fact(key=key, fact="Cats have 230 bones.", kind="Cat fact")

    def test_keys_are_time_ordered(self, store: FactStore):
        first = store.create("one", "Cat fact")
        second = store.create("two", "Cat fact")
        assert key_timestamp(first) < key_timestamp(second)

    def test_create_uses_write_consistency(self, session, store: FactStore):
        store.create("f", "k")
        query, _, level = session.calls[-1]
        assert query.startswith("INSERT INTO pfacts.facts")
        assert level == ConsistencyLevel.LOCAL_QUORUM

    def test_read_uses_read_consistency(self, session, store: FactStore):
        key = store.create("f", "k")
        store.read(key)
        _, params, level = session.calls[-1]
        assert params == (key,)
        assert level == ConsistencyLevel.ONE

    def test_read_missing_key(self, store: FactStore):
        missing = uuid.uuid1()
        with pytest.raises(NotFoundError) as exc_info:
            store.read(missing)
        assert exc_info.value.key == missing

    def test_read_random_uuid_is_not_found(self, session, store: FactStore):
        key = uuid.uuid4()
        with pytest.raises(NotFoundError) as exc_info:
            store.read(key)
        assert exc_info.value.key == key
        assert session.calls == []

    def test_not_found_is_not_query_error(self):
        assert not issubclass(NotFoundError, QueryError)

    def test_read_malformed_row(self, session, store: FactStore):
        key = store.create("f", "k")
        session.rows[key]["kind"] = None
        with pytest.raises(SerializationError):
            store.read(key)

    def test_create_failure_names_operation(self, session, store: FactStore):
        session.fail_on["INSERT"] = WriteTimeout("timed out", write_type=WriteType.SIMPLE)
        with pytest.raises(QueryError) as exc_info:
            store.create("Cats have 230 bones.", "Cat fact")
        assert exc_info.value.operation == "create"
        assert exc_info.value.intent["kind"] == "Cat fact"
        assert "key" in exc_info.value.intent


class TestListKeys:
    def test_empty(self, store: FactStore):
        assert store.list_keys() == []

    def test_grows_and_shrinks_by_one(self, store: FactStore):
        store.create("a", "k")
        before = len(store.list_keys())
        key = store.create("b", "k")
        assert len(store.list_keys()) == before + 1
        store.delete(key)
        assert len(store.list_keys()) == before

    def test_server_error_is_query_error(self, session, store: FactStore):
        session.fail_on["SELECT key FROM"] = ServerError(0x0000, "internal error", None)
        with pytest.raises(QueryError, match="list_keys"):
            store.list_keys()

    def test_scan_follows_read_consistency(self, session, store: FactStore):
        store.policy.set_read_consistency("QUORUM")
        store.list_keys()
        assert session.calls[-1][2] == ConsistencyLevel.QUORUM

    def test_scan_consistency_configurable(self, session, store: FactStore):
        store.policy.set_list_consistency("ALL")
        store.list_keys()
        assert session.calls[-1][2] == ConsistencyLevel.ALL


class TestUpdate:
    def test_update_replaces_fields(self, store: FactStore):
        key = store.create("old", "Cat fact")
        store.update(key, "new", "Printer fact")
        assert store.read(key) == Fact(key=key, fact="new", kind="Printer fact")

    def test_update_keeps_key(self, store: FactStore):
        key = store.create("old", "Cat fact")
        store.update(key, "new", "Cat fact")
        assert store.list_keys() == [key]

    def test_update_missing_key_is_not_an_error(self, store: FactStore):
        """UPDATE is an upsert in CQL."""
        key = uuid.uuid1()
        store.update(key, "f", "k")
        assert store.read(key).fact == "f"

    def test_update_uses_write_consistency(self, session, store: FactStore):
        store.policy.set_write_consistency("ALL")
        store.update(uuid.uuid1(), "f", "k")
        assert session.calls[-1][2] == ConsistencyLevel.ALL


class TestDelete:
    def test_delete_then_read(self, store: FactStore):
        key = store.create("f", "k")
        store.delete(key)
        with pytest.raises(NotFoundError):
            store.read(key)

    def test_delete_absent_key_is_idempotent(self, store: FactStore):
        key = uuid.uuid1()
        store.delete(key)
        store.delete(key)

    def test_delete_random_uuid_is_ignored(self, session, store: FactStore):
        store.delete(uuid.uuid4())
        assert session.calls == []

    def test_delete_failure(self, session, store: FactStore):
        session.fail_on["DELETE"] = WriteTimeout("timed out", write_type=WriteType.SIMPLE)
        key = uuid.uuid1()
        with pytest.raises(QueryError, match=str(key)):
            store.delete(key)


class TestRandom:
    def test_empty_table(self, store: FactStore):
        with pytest.raises(NotFoundError):
            store.random()

    def test_returns_stored_fact(self, store: FactStore):
        keys = {store.create(f"fact {i}", "Cat fact") for i in range(5)}
        assert store.random(random.Random(7)).key in keys

    def test_two_discrete_calls(self, session, store: FactStore):
        store.create("f", "k")
        session.calls.clear()
        store.random()
        assert [query.split()[0] for query, _, _ in session.calls] == ["SELECT", "SELECT"]
        assert session.calls[0][0].startswith("SELECT key FROM")

    def test_key_deleted_between_calls(self, session, store: FactStore):
        """A key that vanishes after listing surfaces as NotFoundError."""
        key = store.create("f", "k")
        original_list_keys = store.list_keys

        def list_then_delete():
            keys = original_list_keys()
            session.rows.pop(key)
            return keys

        store.list_keys = list_then_delete
        with pytest.raises(NotFoundError):
            store.random()


class TestScenario:
    def test_cat_fact_lifecycle(self, store: FactStore):
        key = store.create("Cats have 230 bones.", "Cat fact")
        fact = store.read(key)
        assert (fact.fact, fact.kind) == ("Cats have 230 bones.", "Cat fact")
        assert key in store.list_keys()

        store.delete(key)
        with pytest.raises(NotFoundError):
            store.read(key)
        assert key not in store.list_keys()


class TestConstruction:
    def test_custom_table(self, session, connection):
        store = FactStore(connection, keyspace="other", table="items")
        store.list_keys()
        assert session.calls[-1][0] == "SELECT key FROM other.items"

    def test_rejects_bad_identifier(self, connection):
        with pytest.raises(ValueError):
            FactStore(connection, table="facts; DROP TABLE x")

    def test_from_settings(self, tmp_path):
        settings = StoreSettings(read_consistency="QUORUM", replica_count=5, log_dir=tmp_path)
        with patch("factstore.store.connection.Cluster"):
            store = FactStore.from_settings(settings)
        assert isinstance(store.policy, ConsistencyPolicy)
        assert store.policy.get_read_consistency() == ConsistencyLevel.QUORUM
        assert store.policy.replica_count == 5

    def test_policy_shared_by_reference(self, connection):
        policy = ConsistencyPolicy(ConsistencySettings())
        store = FactStore(connection, policy)
        policy.set_read_consistency("ALL")
        assert store.policy.get_read_consistency() == ConsistencyLevel.ALL

    def test_close(self, session, store: FactStore):
        store.close()
        assert session.is_shutdown
