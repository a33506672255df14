from datetime import datetime

import pytest
from sqlalchemy.exc import OperationalError

from app.database import Base
from app.models.category import Category
from app.services.category_store import FOREST_ORDER
from app.services.errors import Conflict, StorageFault


def payload(name, slug, **extra):
    now = datetime.utcnow()
    values = {
        "name": name,
        "slug": slug,
        "level": 0,
        "is_parent": False,
        "is_active": True,
        "sort_order": 0,
        "created_at": now,
        "updated_at": now,
    }
    values.update(extra)
    return values


def test_create_and_get(store):
    category = store.create(payload("Books", "books"))

    assert category.id
    assert store.get(category.id).slug == "books"
    assert store.get("missing") is None


def test_unique_violation_is_conflict(store):
    store.create(payload("Books", "books"))

    with pytest.raises(Conflict):
        store.create(payload("Books", "books-1"))
    with pytest.raises(Conflict):
        store.create(payload("Novels", "books"))

    # the session is usable again after the rollback
    assert store.count() == 1


def test_update_returns_fresh_row(store):
    category = store.create(payload("Books", "books"))

    updated = store.update(category.id, {"name": "Novels", "slug": "novels"})

    assert updated.name == "Novels"
    assert store.find_one(Category.slug == "novels").id == category.id


def test_update_into_taken_slug_is_conflict(store):
    store.create(payload("Books", "books"))
    music = store.create(payload("Music", "music"))

    with pytest.raises(Conflict):
        store.update(music.id, {"slug": "books"})


def test_mark_inactive(store):
    category = store.create(payload("Books", "books"))

    store.mark_inactive(category.id)

    assert store.get(category.id).is_active is False
    assert store.count(Category.is_active == True) == 0


def test_find_all_orders(store):
    store.create(payload("Zines", "zines", sort_order=1))
    store.create(payload("Atlases", "atlases", sort_order=1))
    store.create(payload("Comics", "comics", sort_order=0))
    store.create(payload("Deep", "deep", level=1, sort_order=0))

    siblings = store.find_all(Category.level == 0)
    assert [c.name for c in siblings] == ["Comics", "Atlases", "Zines"]

    forest = store.find_all(order_by=FOREST_ORDER)
    assert [c.name for c in forest] == ["Comics", "Atlases", "Zines", "Deep"]


def test_database_error_is_storage_fault(engine, store):
    Base.metadata.drop_all(bind=engine)

    with pytest.raises(StorageFault) as exc:
        store.count()

    assert exc.value.status_code == 500
    assert exc.value.code == "STORAGE_FAULT"
    assert exc.value.message == "Database error counting categories"


def test_failed_commit_is_storage_fault_not_conflict(store, db, monkeypatch):
    def broken_commit():
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db, "commit", broken_commit)

    with pytest.raises(StorageFault):
        store.create(payload("Books", "books"))


def test_create_flags_parent_in_same_commit(store):
    parent = store.create(payload("Books", "books"))

    child = store.create(payload("Novels", "novels", parent_id=parent.id, level=1), flag_parent=parent.id)

    assert child.parent_id == parent.id
    assert store.get(parent.id).is_parent is True


def test_conflicting_child_does_not_flag_parent(store):
    parent = store.create(payload("Books", "books"))

    with pytest.raises(Conflict):
        store.create(payload("Books", "books-2", parent_id=parent.id, level=1), flag_parent=parent.id)

    assert store.get(parent.id).is_parent is False
