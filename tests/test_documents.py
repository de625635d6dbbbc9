import copy

import pytest

from doughmain.core.documents import SERVER_TIMESTAMP
from doughmain.core.errors import NotFoundError


@pytest.mark.asyncio
async def test_set_and_get(store):
    ref = store.collection("users").document("u1").collection("accounts").document("a1")
    await ref.set({"name": "Checking", "balance": 10.5})

    snap = await ref.get()
    assert snap.exists
    assert snap.id == "a1"
    assert snap.to_dict() == {"name": "Checking", "balance": 10.5}


@pytest.mark.asyncio
async def test_get_missing_document(store):
    snap = await store.document("users/nobody").get()
    assert snap.exists is False
    assert snap.to_dict() is None


@pytest.mark.asyncio
async def test_set_replaces_without_merge(store):
    ref = store.document("site_settings/global")
    await ref.set({"siteName": "A", "tagline": "B"})
    await ref.set({"siteName": "C"})

    assert (await ref.get()).to_dict() == {"siteName": "C"}


@pytest.mark.asyncio
async def test_set_merge_is_deep(store):
    ref = store.document("users/u1")
    await ref.set({"profile": {"name": "Ann", "city": "Austin"}, "plan": "free"})
    await ref.set({"profile": {"city": "Boston"}}, merge=True)

    assert (await ref.get()).to_dict() == {
        "profile": {"name": "Ann", "city": "Boston"},
        "plan": "free",
    }


@pytest.mark.asyncio
async def test_update_missing_document_raises(store):
    with pytest.raises(NotFoundError):
        await store.document("users/u1/accounts/gone").update({"balance": 1})


@pytest.mark.asyncio
async def test_update_changes_only_given_fields(store):
    ref = store.document("users/u1/accounts/a1")
    await ref.set({"name": "Checking", "balance": 1, "available": 1})
    await ref.update({"balance": 2})

    assert (await ref.get()).to_dict() == {"name": "Checking", "balance": 2, "available": 1}


@pytest.mark.asyncio
async def test_server_timestamp_is_resolved(store):
    ref = store.document("users/u1/plaid_items/item-1")
    await ref.set({"created_at": SERVER_TIMESTAMP})

    created_at = (await ref.get()).get("created_at")
    assert isinstance(created_at, str)
    assert created_at.startswith("20")


def test_server_timestamp_survives_copies():
    assert copy.copy(SERVER_TIMESTAMP) is SERVER_TIMESTAMP
    assert copy.deepcopy(SERVER_TIMESTAMP) is SERVER_TIMESTAMP
    assert copy.deepcopy({"a": [SERVER_TIMESTAMP]})["a"][0] is SERVER_TIMESTAMP


@pytest.mark.asyncio
async def test_server_timestamp_in_nested_merge_and_update(store):
    ref = store.document("users/u1/accounts/a1")
    await ref.set({"meta": {"created_at": SERVER_TIMESTAMP}}, merge=True)
    await ref.update({"updated_at": SERVER_TIMESTAMP})

    batch = store.batch()
    batch.set(store.document("users/u1/transactions/t1"), {"created_at": SERVER_TIMESTAMP})
    await batch.commit()

    data = (await ref.get()).to_dict()
    assert isinstance(data["meta"]["created_at"], str)
    assert isinstance(data["updated_at"], str)
    tx = (await store.document("users/u1/transactions/t1").get()).to_dict()
    assert isinstance(tx["created_at"], str)


@pytest.mark.asyncio
async def test_add_count_and_delete(store):
    items = store.collection("global_content/faq/items")
    first = await items.add({"q": "one"})
    await items.add({"q": "two"})

    assert len(first.id) == 20
    assert await items.count() == 2

    await first.delete()
    assert await items.count() == 1
    # deleting again is a no-op
    await first.delete()


@pytest.mark.asyncio
async def test_collection_get_returns_only_direct_children(store):
    await store.document("users/u1/accounts/a1").set({"n": 1})
    await store.document("users/u1/accounts/a2").set({"n": 2})
    await store.document("users/u1/transactions/t1").set({"n": 3})

    docs = await store.collection("users/u1/accounts").get()
    assert [d.id for d in docs] == ["a1", "a2"]


@pytest.mark.asyncio
async def test_list_documents_includes_parents_without_data(store):
    await store.document("users/with_doc").set({"admin": False})
    await store.document("users/only_subcollections/accounts/a1").set({"n": 1})
    await store.document("site_settings/global").set({"siteName": "x"})

    refs = await store.collection("users").list_documents()
    assert [r.id for r in refs] == ["only_subcollections", "with_doc"]
    # the parent itself still has no document
    assert (await refs[0].get()).exists is False


@pytest.mark.asyncio
async def test_list_documents_lists_each_parent_once(store):
    for n in range(5):
        await store.document(f"users/busy/transactions/t{n}").set({"n": n})
    await store.document("users/busy/accounts/a1").set({"n": 1})
    await store.document("users/busy").set({"plan": "free"})
    await store.document("usersX/other").set({"n": 1})

    refs = await store.collection("users").list_documents()
    assert [r.id for r in refs] == ["busy"]


@pytest.mark.asyncio
async def test_batch_commits_atomically(store):
    existing = store.document("users/u1/accounts/a1")
    await existing.set({"balance": 1})

    batch = store.batch()
    batch.set(existing, {"balance": 2}, merge=True)
    batch.update(store.document("users/u1/accounts/missing"), {"balance": 3})

    with pytest.raises(NotFoundError):
        await batch.commit()

    assert (await existing.get()).get("balance") == 1


@pytest.mark.asyncio
async def test_batch_set_same_document_twice(store):
    ref = store.document("users/u1/transactions/t1")
    batch = store.batch()
    batch.set(ref, {"amount": -5, "category": "Food"}, merge=True)
    batch.set(ref, {"amount": -6}, merge=True)
    await batch.commit()

    assert (await ref.get()).to_dict() == {"amount": -6, "category": "Food"}


def test_reference_paths_are_validated(store):
    with pytest.raises(ValueError):
        store.document("users")
    with pytest.raises(ValueError):
        store.collection("users/u1")
    with pytest.raises(ValueError):
        store.document("users//accounts/a1")
