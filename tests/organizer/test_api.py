"""HTTP adapter tests: RPC endpoints and error mapping, on the in-memory store."""

from __future__ import annotations

from httpx import AsyncClient

from folio.organizer.app import status_for
from folio.organizer.errors import (
    CascadeError,
    ConflictError,
    IllegalMoveError,
    NotFoundError,
    TransientStoreError,
)


async def _create_workspace(client: AsyncClient, name: str = "Team") -> tuple[str, str]:
    resp = await client.post("/api/workspaces/create", json={"name": name})
    assert resp.status_code == 201
    body = resp.json()
    return body["workspace_id"], body["page_id"]


async def _create_page(client: AsyncClient, ws: str, title: str, parent_id: str | None = None) -> str:
    resp = await client.post(f"/api/workspaces/{ws}/pages/create", json={"title": title, "parent_id": parent_id})
    assert resp.status_code == 201
    return resp.json()["page_id"]


async def test_workspace_lifecycle(client: AsyncClient) -> None:
    ws, home = await _create_workspace(client)
    other, _ = await _create_workspace(client, "Other")

    resp = await client.get("/api/workspaces/list")
    assert resp.status_code == 200
    listed = resp.json()
    assert [w["id"] for w in listed] == [ws, other]
    # Records go out with their camelCase wire names.
    assert listed[0]["ownerId"] == "alice"
    assert listed[0]["memberIds"] == ["alice"]

    resp = await client.post(f"/api/workspaces/{ws}/rename", json={"name": "Renamed"})
    assert resp.status_code == 204
    assert (await client.get(f"/api/workspaces/{ws}/get")).json()["name"] == "Renamed"

    resp = await client.post("/api/workspaces/reorder", json={"ordered_ids": [other, ws]})
    assert resp.status_code == 204
    assert [w["id"] for w in (await client.get("/api/workspaces/list")).json()] == [other, ws]

    resp = await client.post(f"/api/workspaces/{ws}/delete")
    assert resp.status_code == 204
    trash = (await client.get("/api/account/trash")).json()
    assert [w["id"] for w in trash["workspaces"]] == [ws]

    # Last active workspace is protected.
    resp = await client.post(f"/api/workspaces/{other}/delete")
    assert resp.status_code == 409
    assert resp.json()["error"] == "LastWorkspaceError"

    resp = await client.post(f"/api/workspaces/{ws}/restore")
    assert resp.status_code == 204

    resp = await client.post(f"/api/workspaces/{ws}/purge")
    assert resp.status_code == 204
    assert (await client.get(f"/api/workspaces/{ws}/get")).status_code == 404
    assert (await client.get(f"/api/workspaces/{ws}/pages/{home}/get")).status_code == 404


async def test_members(client: AsyncClient) -> None:
    ws, _ = await _create_workspace(client)
    resp = await client.post(f"/api/workspaces/{ws}/members/add", json={"user_ids": ["bob"]})
    assert resp.status_code == 204

    resp = await client.post(f"/api/workspaces/{ws}/leave", headers={"X-Folio-User": "bob"})
    assert resp.status_code == 204

    resp = await client.post(f"/api/workspaces/{ws}/leave")
    assert resp.status_code == 422


async def test_page_tree_and_move(client: AsyncClient) -> None:
    ws, home = await _create_workspace(client)
    notes = await _create_page(client, ws, "Notes")
    draft = await _create_page(client, ws, "Draft", parent_id=notes)

    tree = (await client.get(f"/api/workspaces/{ws}/pages/tree")).json()
    assert [p["id"] for p in tree["roots"]] == [home, notes]
    assert [p["id"] for p in tree["children_by_parent"][notes]] == [draft]
    assert tree["roots"][0]["isDeleted"] is False

    resp = await client.post(
        f"/api/workspaces/{ws}/pages/{draft}/move",
        json={"new_parent_id": None, "final_sibling_order": [home, draft, notes]},
    )
    assert resp.status_code == 204

    tree = (await client.get(f"/api/workspaces/{ws}/pages/tree")).json()
    assert [p["id"] for p in tree["roots"]] == [home, draft, notes]
    assert tree["children_by_parent"][notes] == []

    first = (await client.get(f"/api/workspaces/{ws}/pages/first-root")).json()
    assert first == {"page_id": home}


async def test_illegal_move_is_conflict(client: AsyncClient) -> None:
    ws, home = await _create_workspace(client)
    child = await _create_page(client, ws, "Child", parent_id=home)

    resp = await client.post(
        f"/api/workspaces/{ws}/pages/{home}/move",
        json={"new_parent_id": child, "final_sibling_order": [home]},
    )
    assert resp.status_code == 409
    assert resp.json()["error"] == "IllegalMoveError"

    resp = await client.post(
        f"/api/workspaces/{ws}/pages/{home}/move",
        json={"new_parent_id": None, "final_sibling_order": []},
    )
    assert resp.status_code == 422


async def test_move_candidates(client: AsyncClient) -> None:
    ws, home = await _create_workspace(client)
    child = await _create_page(client, ws, "Child", parent_id=home)
    other = await _create_page(client, ws, "Other")

    resp = await client.get(f"/api/workspaces/{ws}/pages/{other}/move-candidates")
    assert resp.status_code == 200
    assert resp.json() == [
        {"page_id": home, "title": "Home", "depth": 0},
        {"page_id": child, "title": "Child", "depth": 1},
    ]


async def test_page_trash_and_purge(client: AsyncClient) -> None:
    ws, home = await _create_workspace(client)
    page = await _create_page(client, ws, "Scratch")

    assert (await client.post(f"/api/workspaces/{ws}/pages/{page}/rename", json={"title": ""})).status_code == 204
    assert (await client.get(f"/api/workspaces/{ws}/pages/{page}/get")).json()["title"] == "Untitled"

    assert (await client.post(f"/api/workspaces/{ws}/pages/{page}/delete")).status_code == 204
    listed = (await client.get(f"/api/workspaces/{ws}/pages/list")).json()
    assert [p["id"] for p in listed] == [home]
    trash = (await client.get("/api/account/trash")).json()
    assert [(t["workspace_id"], t["page"]["id"]) for t in trash["pages"]] == [(ws, page)]

    assert (await client.post(f"/api/workspaces/{ws}/pages/{page}/restore")).status_code == 204
    assert len((await client.get(f"/api/workspaces/{ws}/pages/list")).json()) == 2

    assert (await client.post(f"/api/workspaces/{ws}/pages/{page}/purge")).status_code == 204
    all_pages = (await client.get(f"/api/workspaces/{ws}/pages/list", params={"include_deleted": True})).json()
    assert [p["id"] for p in all_pages] == [home]


async def test_blocks(client: AsyncClient) -> None:
    ws, home = await _create_workspace(client)
    base = f"/api/workspaces/{ws}/pages/{home}/blocks"

    resp = await client.post(f"{base}/add", json={"type": "text", "data": {"text": "hello"}})
    assert resp.status_code == 201
    block_id = resp.json()["block_id"]
    resp = await client.post(f"{base}/add", json={"type": "chart"})
    assert resp.status_code == 201

    resp = await client.post(f"{base}/{block_id}/update", json={"data": {"text": "bye"}})
    assert resp.status_code == 204

    blocks = (await client.get(f"{base}/list")).json()
    assert [b["type"] for b in blocks] == ["text", "chart"]
    assert blocks[0]["data"] == {"text": "bye"}

    assert (await client.post(f"{base}/{block_id}/remove")).status_code == 204
    assert (await client.post(f"{base}/{block_id}/remove")).status_code == 404

    resp = await client.post(f"{base}/add", json={})
    assert resp.status_code == 201
    assert (await client.get(f"{base}/list")).json()[-1]["data"] == {"text": ""}


async def test_bootstrap_and_deactivate(client: AsyncClient) -> None:
    resp = await client.post("/api/account/bootstrap")
    assert resp.status_code == 200
    hub = resp.json()
    assert (await client.post("/api/account/bootstrap")).json() == hub

    assert (await client.post("/api/account/deactivate")).status_code == 204
    assert (await client.get("/api/workspaces/list")).json() == []


async def test_missing_user_is_unauthorized(client: AsyncClient) -> None:
    resp = await client.post("/api/workspaces/create", json={}, headers={"X-Folio-User": ""})
    assert resp.status_code == 401
    assert resp.json()["error"] == "NotAuthenticatedError"


async def test_unknown_records_are_not_found(client: AsyncClient) -> None:
    ws, _ = await _create_workspace(client)
    assert (await client.get("/api/workspaces/ghost/get")).status_code == 404
    assert (await client.post(f"/api/workspaces/{ws}/pages/create", json={"parent_id": "ghost"})).status_code == 404
    assert (await client.get("/api/workspaces/ghost/pages/stream")).status_code == 404


def test_status_mapping() -> None:
    assert status_for(NotFoundError("x/y")) == 404
    assert status_for(IllegalMoveError("a", "b")) == 409
    assert status_for(ConflictError("x/y")) == 409
    assert status_for(TransientStoreError("down")) == 503
    assert status_for(CascadeError("x/y", [])) == 500
    assert status_for(ValueError("bad")) == 422
    assert status_for(RuntimeError("boom")) == 500
