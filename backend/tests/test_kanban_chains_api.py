"""
API Integration Tests — Kanban chains.
"""

import pytest
from httpx import AsyncClient


def _payload(seeded_db, **overrides) -> dict:
    body = {
        "customer_account_id": seeded_db["customer"].id,
        "product_id": "P-100",
        "supplier_account_id": seeded_db["supplier"].id,
        "status_chain_id": seeded_db["status_chain"].status_chain_id,
        "leadtime_days": 2,
        "quantity": 12.5,
        "container_type": "Tote",
        "target_active_kanban_count": 3,
    }
    body.update(overrides)
    return body


@pytest.mark.asyncio
class TestKanbanChainsAPI:

    async def test_create_chain_creates_kanbans(self, client: AsyncClient, seeded_db):
        response = await client.post("/api/v1/kanban-chains/", json=_payload(seeded_db))
        assert response.status_code == 201
        chain_id = response.json()["id"]

        listing = await client.get("/api/v1/kanban-chains/")
        summary = next(c for c in listing.json() if c["id"] == chain_id)
        assert summary["active_kanban_count"] == 3
        assert summary["customer_name"] == "Acme Assembly"
        assert summary["product_name"] == "Hex Bolt M8"

    async def test_initial_kanbans_override(self, client: AsyncClient, seeded_db):
        response = await client.post(
            "/api/v1/kanban-chains/",
            json=_payload(seeded_db, initial_kanbans=1),
        )
        assert response.status_code == 201
        chain_id = response.json()["id"]

        listing = await client.get("/api/v1/kanban-chains/")
        summary = next(c for c in listing.json() if c["id"] == chain_id)
        assert summary["active_kanban_count"] == 1

    async def test_create_with_empty_status_chain_leaves_no_chain(self, client: AsyncClient, seeded_db):
        empty_chain = await client.post("/api/v1/status-chains/", json={"name": "Nothing"})
        status_chain_id = empty_chain.json()["status_chain_id"]

        response = await client.post(
            "/api/v1/kanban-chains/",
            json=_payload(seeded_db, status_chain_id=status_chain_id),
        )
        assert response.status_code == 500

        listing = await client.get("/api/v1/kanban-chains/")
        assert all(c["status_chain_id"] != status_chain_id for c in listing.json())

    async def test_create_with_unknown_product(self, client: AsyncClient, seeded_db):
        response = await client.post("/api/v1/kanban-chains/", json=_payload(seeded_db, product_id="NOPE"))
        assert response.status_code == 404

    async def test_negative_target_is_rejected(self, client: AsyncClient, seeded_db):
        response = await client.post(
            "/api/v1/kanban-chains/",
            json=_payload(seeded_db, target_active_kanban_count=-1),
        )
        assert response.status_code == 422

    async def test_patch_with_top_up(self, client: AsyncClient, seeded_db):
        chain_id = seeded_db["kanban_chain"].id
        response = await client.patch(
            f"/api/v1/kanban-chains/{chain_id}",
            json={"quantity": 80, "add_kanbans": 2},
        )
        assert response.status_code == 200
        assert response.json()["quantity"] == 80

        kanbans = await client.get("/api/v1/kanbans/")
        assert len([k for k in kanbans.json() if k["kanban_chain_id"] == chain_id]) == 4

    async def test_patch_unknown_field(self, client: AsyncClient, seeded_db):
        response = await client.patch(
            f"/api/v1/kanban-chains/{seeded_db['kanban_chain'].id}",
            json={"status_current": 1},
        )
        assert response.status_code == 422

    async def test_patch_null_field_is_rejected(self, client: AsyncClient, seeded_db):
        response = await client.patch(
            f"/api/v1/kanban-chains/{seeded_db['kanban_chain'].id}",
            json={"container_type": None},
        )
        assert response.status_code == 422

    async def test_top_up_endpoint(self, client: AsyncClient, seeded_db):
        chain_id = seeded_db["kanban_chain"].id
        response = await client.post(f"/api/v1/kanban-chains/{chain_id}/kanbans", json={"count": 2})
        assert response.status_code == 201
        created = response.json()
        assert len(created) == 2
        assert all(k["kanban_chain_id"] == chain_id for k in created)

    async def test_get_missing_chain(self, client: AsyncClient):
        response = await client.get("/api/v1/kanban-chains/9999")
        assert response.status_code == 404

    async def test_delete_chain_with_kanbans(self, client: AsyncClient, seeded_db):
        response = await client.delete(f"/api/v1/kanban-chains/{seeded_db['kanban_chain'].id}")
        assert response.status_code == 409

    async def test_delete_chain_without_kanbans(self, client: AsyncClient, seeded_db):
        created = await client.post("/api/v1/kanban-chains/", json=_payload(seeded_db, initial_kanbans=0))
        chain_id = created.json()["id"]

        response = await client.delete(f"/api/v1/kanban-chains/{chain_id}")
        assert response.status_code == 204
