"""Notes API tests — CRUD, pinning, search, stats, ownership.

Learn: Every request here passes through the real authorization gate, so
these double as end-to-end checks that the AuthContext's account id
scopes each query. Notes created by one user are invisible to another.
"""

import uuid

import pytest

from conftest import signup, unique_email


async def _create(client, headers, title="Groceries", content="milk, eggs", **extra):
    body = {"title": title, "content": content, **extra}
    r = await client.post("/api/notes", json=body, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()["note"]


async def _second_user(client, mailer):
    email = unique_email("other")
    await signup(client, email)
    r = await client.post(
        "/api/auth/verify-otp", json={"email": email, "otp": mailer.last_code_for(email)}
    )
    return {"Authorization": f"Bearer {r.json()['token']}"}


# ═══════════════════════════════════════════════════════════
# Gate
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_notes_require_token(client):
    r = await client.get("/api/notes")
    assert r.status_code == 401
    assert r.headers["www-authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_notes_reject_bad_token(client):
    r = await client.post(
        "/api/notes",
        json={"title": "t", "content": "c"},
        headers={"Authorization": "Bearer nope"},
    )
    assert r.status_code == 401


# ═══════════════════════════════════════════════════════════
# CRUD
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_create_note(client, verified_user):
    note = await _create(
        client,
        verified_user["headers"],
        tags=["home", " errands "],
        backgroundColor="#ffeeaa",
    )
    assert note["title"] == "Groceries"
    assert note["userId"] == verified_user["id"]
    assert note["tags"] == ["home", "errands"]
    assert note["backgroundColor"] == "#ffeeaa"
    assert note["isPinned"] is False
    assert note["createdAt"]


@pytest.mark.asyncio
async def test_create_note_defaults(client, verified_user):
    note = await _create(client, verified_user["headers"])
    assert note["tags"] == []
    assert note["backgroundColor"] == "#ffffff"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"content": "no title"},
        {"title": "", "content": "c"},
        {"title": "x" * 201, "content": "c"},
        {"title": "t", "content": "c", "backgroundColor": "red"},
        {"title": "t", "content": "c", "tags": ["x" * 31]},
    ],
)
async def test_create_note_validation(client, verified_user, body):
    r = await client.post("/api/notes", json=body, headers=verified_user["headers"])
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_get_note(client, verified_user):
    created = await _create(client, verified_user["headers"])
    r = await client.get(f"/api/notes/{created['id']}", headers=verified_user["headers"])
    assert r.status_code == 200
    assert r.json()["note"]["id"] == created["id"]


@pytest.mark.asyncio
async def test_get_note_invalid_id(client, verified_user):
    r = await client.get("/api/notes/not-a-uuid", headers=verified_user["headers"])
    assert r.status_code == 400
    assert r.json()["detail"] == "Invalid note ID"


@pytest.mark.asyncio
async def test_get_note_missing(client, verified_user):
    r = await client.get(f"/api/notes/{uuid.uuid4()}", headers=verified_user["headers"])
    assert r.status_code == 404
    assert r.json()["detail"] == "Note not found"


@pytest.mark.asyncio
async def test_update_note(client, verified_user):
    headers = verified_user["headers"]
    created = await _create(client, headers, tags=["a", "b"])

    r = await client.put(
        f"/api/notes/{created['id']}",
        json={"title": "Shopping", "tags": ["c"]},
        headers=headers,
    )
    assert r.status_code == 200
    note = r.json()["note"]
    assert r.json()["message"] == "Note updated successfully"
    assert note["title"] == "Shopping"
    assert note["content"] == created["content"]
    assert note["tags"] == ["c"]

    r = await client.get(f"/api/notes/{created['id']}", headers=headers)
    assert r.json()["note"]["tags"] == ["c"]


@pytest.mark.asyncio
async def test_update_note_requires_a_field(client, verified_user):
    created = await _create(client, verified_user["headers"])
    r = await client.put(
        f"/api/notes/{created['id']}", json={}, headers=verified_user["headers"]
    )
    assert r.status_code == 400


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [{"title": None}, {"content": None}, {"backgroundColor": None}, {"isPinned": None}],
)
async def test_update_note_rejects_null_fields(client, verified_user, body):
    headers = verified_user["headers"]
    created = await _create(client, headers)

    r = await client.put(f"/api/notes/{created['id']}", json=body, headers=headers)
    assert r.status_code == 400

    r = await client.get(f"/api/notes/{created['id']}", headers=headers)
    assert r.json()["note"]["title"] == "Groceries"


@pytest.mark.asyncio
async def test_update_note_null_tags_clears_them(client, verified_user):
    headers = verified_user["headers"]
    created = await _create(client, headers, tags=["a"])

    r = await client.put(f"/api/notes/{created['id']}", json={"tags": None}, headers=headers)
    assert r.status_code == 200
    assert r.json()["note"]["tags"] == []


@pytest.mark.asyncio
async def test_delete_note(client, verified_user):
    headers = verified_user["headers"]
    created = await _create(client, headers, tags=["gone"])

    r = await client.delete(f"/api/notes/{created['id']}", headers=headers)
    assert r.status_code == 200
    assert r.json()["message"] == "Note deleted successfully"

    r = await client.get(f"/api/notes/{created['id']}", headers=headers)
    assert r.status_code == 404
    r = await client.delete(f"/api/notes/{created['id']}", headers=headers)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_toggle_pin(client, verified_user):
    headers = verified_user["headers"]
    created = await _create(client, headers)

    r = await client.patch(f"/api/notes/{created['id']}/pin", headers=headers)
    assert r.status_code == 200
    assert r.json()["message"] == "Note pinned successfully"
    assert r.json()["note"]["isPinned"] is True

    r = await client.patch(f"/api/notes/{created['id']}/pin", headers=headers)
    assert r.json()["message"] == "Note unpinned successfully"
    assert r.json()["note"]["isPinned"] is False


# ═══════════════════════════════════════════════════════════
# Listing
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_list_pinned_first(client, verified_user):
    headers = verified_user["headers"]
    first = await _create(client, headers, title="first")
    await _create(client, headers, title="second")
    await _create(client, headers, title="third")
    await client.patch(f"/api/notes/{first['id']}/pin", headers=headers)

    r = await client.get("/api/notes", headers=headers)
    assert r.status_code == 200
    titles = [n["title"] for n in r.json()["notes"]]
    assert titles == ["first", "third", "second"]


@pytest.mark.asyncio
async def test_list_sort_by_title_ascending(client, verified_user):
    headers = verified_user["headers"]
    for title in ("banana", "apple", "cherry"):
        await _create(client, headers, title=title)

    r = await client.get(
        "/api/notes", params={"sortBy": "title", "order": "asc"}, headers=headers
    )
    assert [n["title"] for n in r.json()["notes"]] == ["apple", "banana", "cherry"]


@pytest.mark.asyncio
async def test_list_search_and_tag_filter(client, verified_user):
    headers = verified_user["headers"]
    await _create(client, headers, title="Groceries", content="milk", tags=["home"])
    await _create(client, headers, title="Standup", content="sprint notes", tags=["work"])
    await _create(client, headers, title="Ideas", content="a GROCERY app", tags=["side"])

    r = await client.get("/api/notes", params={"search": "grocer"}, headers=headers)
    assert {n["title"] for n in r.json()["notes"]} == {"Groceries", "Ideas"}

    r = await client.get("/api/notes", params={"search": "wor"}, headers=headers)
    assert [n["title"] for n in r.json()["notes"]] == ["Standup"]

    r = await client.get("/api/notes", params={"tag": "home"}, headers=headers)
    assert [n["title"] for n in r.json()["notes"]] == ["Groceries"]


@pytest.mark.asyncio
async def test_list_pagination(client, verified_user):
    headers = verified_user["headers"]
    for i in range(5):
        await _create(client, headers, title=f"note {i}")

    r = await client.get("/api/notes", params={"page": 2, "limit": 2}, headers=headers)
    body = r.json()
    assert len(body["notes"]) == 2
    assert body["pagination"] == {"page": 2, "limit": 2, "total": 5, "pages": 3}


@pytest.mark.asyncio
async def test_list_rejects_bad_sort(client, verified_user):
    r = await client.get(
        "/api/notes", params={"sortBy": "password"}, headers=verified_user["headers"]
    )
    assert r.status_code == 400


# ═══════════════════════════════════════════════════════════
# Stats
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_stats_summary(client, verified_user):
    headers = verified_user["headers"]
    a = await _create(client, headers, tags=["work", "urgent"])
    await _create(client, headers, tags=["work"])
    await _create(client, headers, tags=["home"])
    await client.patch(f"/api/notes/{a['id']}/pin", headers=headers)

    r = await client.get("/api/notes/stats/summary", headers=headers)
    assert r.status_code == 200
    body = r.json()
    assert body["totalNotes"] == 3
    assert body["pinnedNotes"] == 1
    assert body["topTags"][0] == {"tag": "work", "count": 2}
    assert {t["tag"] for t in body["topTags"]} == {"work", "urgent", "home"}


@pytest.mark.asyncio
async def test_stats_empty(client, verified_user):
    r = await client.get("/api/notes/stats/summary", headers=verified_user["headers"])
    assert r.json() == {"totalNotes": 0, "pinnedNotes": 0, "topTags": []}


# ═══════════════════════════════════════════════════════════
# Ownership
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_notes_are_private_to_their_owner(client, verified_user, mailer):
    mine = await _create(client, verified_user["headers"], tags=["secret"])
    other = await _second_user(client, mailer)
    path = f"/api/notes/{mine['id']}"

    assert (await client.get(path, headers=other)).status_code == 404
    assert (
        await client.put(path, json={"title": "hijacked"}, headers=other)
    ).status_code == 404
    assert (await client.patch(f"{path}/pin", headers=other)).status_code == 404
    assert (await client.delete(path, headers=other)).status_code == 404

    listing = await client.get("/api/notes", headers=other)
    assert listing.json()["notes"] == []
    stats = await client.get("/api/notes/stats/summary", headers=other)
    assert stats.json()["totalNotes"] == 0

    r = await client.get(path, headers=verified_user["headers"])
    assert r.json()["note"]["title"] == "Groceries"
