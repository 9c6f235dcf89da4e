"""
Unit tests for the append-only versioned record store.

Tests cover:
- History length and newest-first ordering
- Latest-per-group resolution (single id and listings)
- Immutability of earlier physical records
- Tombstones (soft delete) and their visibility
- Logical id allocation
- NotFound / ValidationFailure / StoreFailure surfaces
"""

import pytest
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlmodel import select

from histcrud.core.errors import NotFound, StoreFailure, ValidationFailure
from histcrud.modules.users.models import UserRecord
from histcrud.modules.users.service import USERS
from histcrud.modules.versioning import store
from histcrud.modules.versioning.models import ACTIVE, DELETED, UPDATED


def _snapshot(rows):
    return [(r.record_id, r.user_id, r.name, r.email, r.age, r.status, r.created_at) for r in rows]


def _count_rows(session):
    return len(session.exec(select(UserRecord)).all())


class TestScenario:
    """Create -> update -> delete of one logical user."""

    def test_create_then_update(self, session):
        """Current view follows the newest row; history keeps both."""
        store.create_entity(session, USERS, {"name": "Ann", "email": "ann@example.com", "age": 30}, logical_id=7)
        store.append_mutation(
            session, USERS, 7, {"name": "Annie", "email": "ann@example.com", "age": 30}, UPDATED
        )

        current = store.resolve_current(session, USERS, 7)
        assert current.name == "Annie"
        assert current.status == UPDATED

        history = store.read_history(session, USERS, 7)
        assert [(r.name, r.status) for r in history] == [("Annie", UPDATED), ("Ann", ACTIVE)]

    def test_delete_keeps_history(self, session):
        """A tombstone is appended; nothing is removed."""
        store.create_entity(session, USERS, {"name": "Ann", "email": "ann@example.com", "age": 30}, logical_id=7)
        store.update_entity(session, USERS, 7, {"name": "Annie"})

        tombstone, already = store.delete_entity(session, USERS, 7)

        assert already is False
        assert tombstone.status == DELETED
        assert tombstone.name == "Annie"
        assert len(store.read_history(session, USERS, 7)) == 3
        assert store.resolve_current(session, USERS, 7).status == DELETED

        live, _ = store.list_current(session, USERS)
        assert 7 not in [u.user_id for u in live]

    def test_unknown_logical_id(self, session):
        with pytest.raises(NotFound):
            store.resolve_current(session, USERS, 999)
        with pytest.raises(NotFound):
            store.read_history(session, USERS, 999)


class TestHistory:
    """read_history properties."""

    def test_n_appends_give_n_rows_descending(self, session):
        created = store.create_entity(session, USERS, {"name": "Bob", "email": "bob@example.com", "age": 40})
        uid = created.user_id
        for i in range(4):
            store.append_mutation(
                session, USERS, uid, {"name": f"Bob {i}", "email": "bob@example.com", "age": 40 + i}, UPDATED
            )

        history = store.read_history(session, USERS, uid)
        ids = [r.record_id for r in history]

        assert len(history) == 5
        assert ids == sorted(ids, reverse=True)
        assert len(set(ids)) == 5

    def test_history_is_scoped_to_logical_id(self, session):
        a = store.create_entity(session, USERS, {"name": "A", "email": "a@example.com", "age": 1})
        b = store.create_entity(session, USERS, {"name": "B", "email": "b@example.com", "age": 2})
        store.update_entity(session, USERS, a.user_id, {"age": 3})

        assert {r.user_id for r in store.read_history(session, USERS, a.user_id)} == {a.user_id}
        assert len(store.read_history(session, USERS, b.user_id)) == 1


class TestAppendOnly:
    """Mutations only ever add rows."""

    def test_append_does_not_touch_existing_rows(self, session):
        u = store.create_entity(session, USERS, {"name": "Cy", "email": "cy@example.com", "age": 20})
        store.update_entity(session, USERS, u.user_id, {"age": 21})
        before = _snapshot(store.read_history(session, USERS, u.user_id))

        store.update_entity(session, USERS, u.user_id, {"name": "Cyrus"})
        store.delete_entity(session, USERS, u.user_id)

        after = _snapshot(store.read_history(session, USERS, u.user_id))
        assert after[2:] == before

    def test_each_append_adds_exactly_one_row(self, session):
        u = store.create_entity(session, USERS, {"name": "Di", "email": "di@example.com", "age": 5})
        n = _count_rows(session)

        store.append_mutation(session, USERS, u.user_id, {"name": "Di", "email": "di@example.com", "age": 6}, UPDATED)

        assert _count_rows(session) == n + 1

    def test_sqlite_triggers_reject_update_and_delete(self, engine, session):
        store.create_entity(session, USERS, {"name": "Eve", "email": "eve@example.com", "age": 9})

        with pytest.raises(DBAPIError, match="append-only"):
            with engine.begin() as conn:
                conn.execute(text("UPDATE users SET name = 'Mallory'"))
        with pytest.raises(DBAPIError, match="append-only"):
            with engine.begin() as conn:
                conn.execute(text("DELETE FROM users"))

    def test_update_merges_over_current_fields(self, session):
        u = store.create_entity(session, USERS, {"name": "Fay", "email": "fay@example.com", "age": 50})

        updated = store.update_entity(session, USERS, u.user_id, {"age": 51, "name": None})

        assert updated.name == "Fay"
        assert updated.email == "fay@example.com"
        assert updated.age == 51
        assert updated.user_id == u.user_id


class TestLatestPerGroup:
    """list_current returns the max record_id of every logical id."""

    def test_listing_resolves_every_group(self, session):
        ids = []
        for name in ("Gus", "Hal", "Ivy"):
            ids.append(store.create_entity(session, USERS, {"name": name, "email": f"{name}@example.com", "age": 1}).user_id)
        store.update_entity(session, USERS, ids[1], {"age": 2})
        store.update_entity(session, USERS, ids[1], {"age": 3})
        store.update_entity(session, USERS, ids[0], {"age": 4})
        store.delete_entity(session, USERS, ids[2])

        rows, total = store.list_current(session, USERS, include_deleted=True)

        assert total == 3
        assert [r.user_id for r in rows] == sorted(ids)
        for r in rows:
            assert r.record_id == store.read_history(session, USERS, r.user_id)[0].record_id

        live, live_total = store.list_current(session, USERS)
        assert live_total == 2
        assert ids[2] not in [r.user_id for r in live]

    def test_listing_pages(self, session):
        for i in range(5):
            store.create_entity(session, USERS, {"name": f"U{i}", "email": f"u{i}@example.com", "age": i})

        rows, total = store.list_current(session, USERS, limit=2, offset=2)

        assert total == 5
        assert [r.name for r in rows] == ["U2", "U3"]

    def test_tombstone_resolves_as_current(self, session):
        u = store.create_entity(session, USERS, {"name": "Jo", "email": "jo@example.com", "age": 1})
        store.delete_entity(session, USERS, u.user_id)

        assert store.resolve_current(session, USERS, u.user_id).status == DELETED
        assert store.is_live(session, USERS, u.user_id) is False
        assert store.is_live(session, USERS, 12345) is False


class TestLifecycleRules:
    """Tombstone handling on update/delete."""

    def test_update_of_tombstone_is_not_found(self, session):
        u = store.create_entity(session, USERS, {"name": "Kim", "email": "kim@example.com", "age": 1})
        store.delete_entity(session, USERS, u.user_id)

        with pytest.raises(NotFound) as exc:
            store.update_entity(session, USERS, u.user_id, {"age": 2})
        assert exc.value.details["status"] == DELETED

    def test_delete_is_idempotent(self, session):
        u = store.create_entity(session, USERS, {"name": "Lu", "email": "lu@example.com", "age": 1})
        first, already1 = store.delete_entity(session, USERS, u.user_id)
        second, already2 = store.delete_entity(session, USERS, u.user_id)

        assert (already1, already2) == (False, True)
        assert first.record_id == second.record_id
        assert len(store.read_history(session, USERS, u.user_id)) == 2

    def test_invalid_status_rejected(self, session):
        u = store.create_entity(session, USERS, {"name": "Mo", "email": "mo@example.com", "age": 1})
        n = _count_rows(session)

        with pytest.raises(ValidationFailure):
            store.append_mutation(session, USERS, u.user_id, {"name": "Mo"}, "archived")
        assert _count_rows(session) == n

    def test_mutation_of_unallocated_id_rejected(self, session):
        """An update/delete for an id nobody created must not seed a future entity's history."""
        with pytest.raises(NotFound):
            store.append_mutation(session, USERS, 1, {"name": "Ghost", "email": "g@example.com", "age": 1}, UPDATED)
        with pytest.raises(NotFound):
            store.append_mutation(session, USERS, 1, {"name": "Ghost", "email": "g@example.com", "age": 1}, DELETED)
        assert _count_rows(session) == 0

        real = store.create_entity(session, USERS, {"name": "Real", "email": "real@example.com", "age": 2})

        assert [(r.name, r.status) for r in store.read_history(session, USERS, real.user_id)] == [("Real", ACTIVE)]

    def test_active_append_needs_allocated_id(self, session):
        with pytest.raises(NotFound):
            store.append_mutation(session, USERS, 5, {"name": "Stray", "email": "s@example.com", "age": 1}, ACTIVE)
        assert _count_rows(session) == 0

    def test_second_active_row_rejected(self, session):
        u = store.create_entity(session, USERS, {"name": "Una", "email": "una@example.com", "age": 1})

        with pytest.raises(StoreFailure):
            store.append_mutation(session, USERS, u.user_id, {"name": "Una", "email": "una@example.com", "age": 1}, ACTIVE)
        assert len(store.read_history(session, USERS, u.user_id)) == 1

    def test_none_in_changes_keeps_current_value(self, session):
        u = store.create_entity(session, USERS, {"name": "Val", "email": "val@example.com", "age": 44})

        updated = store.update_entity(session, USERS, u.user_id, {"age": None, "email": "v@example.com"})

        assert updated.age == 44
        assert updated.email == "v@example.com"

    def test_unknown_fields_rejected(self, session):
        with pytest.raises(ValidationFailure) as exc:
            store.create_entity(session, USERS, {"name": "Ned", "nickname": "N"})
        assert exc.value.details == {"fields": ["nickname"]}


class TestAllocation:
    """Logical ids come from the allocator table."""

    def test_fresh_ids_are_distinct_and_increasing(self, session):
        ids = [
            store.create_entity(session, USERS, {"name": f"N{i}", "email": f"n{i}@example.com", "age": i}).user_id
            for i in range(3)
        ]
        assert ids == sorted(ids)
        assert len(set(ids)) == 3

    def test_explicit_id_then_sequence_continues(self, session):
        store.create_entity(session, USERS, {"name": "Ann", "email": "ann@example.com", "age": 30}, logical_id=7)
        nxt = store.create_entity(session, USERS, {"name": "Ben", "email": "ben@example.com", "age": 31})
        assert nxt.user_id == 8

    def test_explicit_id_collision_is_store_failure(self, session):
        store.create_entity(session, USERS, {"name": "Ann", "email": "ann@example.com", "age": 30}, logical_id=7)

        with pytest.raises(StoreFailure):
            store.create_entity(session, USERS, {"name": "Other", "email": "o@example.com", "age": 1}, logical_id=7)

        # session is usable again and the original entity is untouched
        assert [r.name for r in store.read_history(session, USERS, 7)] == ["Ann"]

    def test_deleted_ids_are_not_reused(self, session):
        u = store.create_entity(session, USERS, {"name": "Pat", "email": "pat@example.com", "age": 1})
        store.delete_entity(session, USERS, u.user_id)

        nxt = store.create_entity(session, USERS, {"name": "Quin", "email": "quin@example.com", "age": 1})
        assert nxt.user_id > u.user_id
