# tests/test_categories.py
"""Category CRUD, stats and bulk updates"""
from quickdesk.models import Category


class TestCategoryCrud:
    """Create, read, update and delete"""

    def test_list_only_active_by_default(self, client, db, requester, category, auth_headers):
        db.add(Category(name="Retired", is_active=False))
        db.commit()

        response = client.get("/api/categories", headers=auth_headers(requester))

        assert response.status_code == 200
        names = [c["name"] for c in response.json()["data"]["categories"]]
        assert names == ["Technical Support"]

    def test_list_inactive_on_request(self, client, db, requester, category, auth_headers):
        db.add(Category(name="Retired", is_active=False))
        db.commit()

        response = client.get("/api/categories?isActive=false", headers=auth_headers(requester))

        names = [c["name"] for c in response.json()["data"]["categories"]]
        assert names == ["Retired"]

    def test_agent_creates_category(self, client, agent, auth_headers):
        response = client.post(
            "/api/categories",
            json={"name": "Networking", "description": "Wi-Fi and VPN", "color": "#123abc"},
            headers=auth_headers(agent),
        )

        assert response.status_code == 201
        created = response.json()["data"]["category"]
        assert created["name"] == "Networking"
        assert created["color"] == "#123abc"
        assert created["created_by"]["id"] == str(agent.id)

    def test_requester_cannot_create(self, client, requester, auth_headers):
        response = client.post("/api/categories", json={"name": "Networking"}, headers=auth_headers(requester))

        assert response.status_code == 403

    def test_duplicate_name_case_insensitive(self, client, admin, category, auth_headers):
        response = client.post(
            "/api/categories",
            json={"name": "technical support"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Category with this name already exists"

    def test_invalid_color(self, client, admin, auth_headers):
        response = client.post(
            "/api/categories",
            json={"name": "Networking", "color": "blue"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Please provide a valid hex color"

    def test_get_with_ticket_count(self, client, create_ticket, requester, category, auth_headers):
        create_ticket(requester)

        response = client.get(f"/api/categories/{category.id}", headers=auth_headers(requester))

        assert response.status_code == 200
        assert response.json()["data"]["category"]["ticket_count"] == 1

    def test_update_category(self, client, admin, category, auth_headers):
        response = client.put(
            f"/api/categories/{category.id}",
            json={"description": "Everything with a plug", "isActive": False},
            headers=auth_headers(admin),
        )

        assert response.status_code == 200
        updated = response.json()["data"]["category"]
        assert updated["description"] == "Everything with a plug"
        assert updated["is_active"] is False

    def test_delete_blocked_by_tickets(self, client, create_ticket, requester, admin, category, auth_headers):
        create_ticket(requester)
        create_ticket(requester, title="Another printer problem")

        response = client.delete(f"/api/categories/{category.id}", headers=auth_headers(admin))

        assert response.status_code == 400
        assert response.json()["message"] == (
            "Cannot delete category. It has 2 associated ticket(s). "
            "Please reassign or delete the tickets first."
        )

    def test_delete_empty_category(self, client, db, admin, category, auth_headers):
        response = client.delete(f"/api/categories/{category.id}", headers=auth_headers(admin))

        assert response.status_code == 200
        db.expire_all()
        assert db.query(Category).count() == 0

    def test_missing_category(self, client, requester, auth_headers):
        response = client.get("/api/categories/not-a-uuid", headers=auth_headers(requester))

        assert response.status_code == 404
        assert response.json()["message"] == "Category not found"


class TestCategoryStatsAndBulk:
    def test_stats_sorted_by_ticket_count(self, client, db, create_ticket, requester, category, auth_headers):
        db.add(Category(name="Quiet Corner", is_active=True))
        db.commit()
        create_ticket(requester)

        response = client.get("/api/categories/stats", headers=auth_headers(requester))

        data = response.json()["data"]
        assert data["total_categories"] == 2
        assert data["active_categories"] == 2
        assert data["category_stats"][0]["name"] == "Technical Support"
        assert data["category_stats"][0]["ticket_count"] == 1
        assert data["category_stats"][0]["open_tickets"] == 1
        assert data["category_stats"][1]["ticket_count"] == 0

    def test_bulk_deactivate(self, client, db, admin, category, auth_headers):
        other = Category(name="Billing", is_active=True)
        db.add(other)
        db.commit()

        response = client.put(
            "/api/categories/bulk",
            json={"categoryIds": [str(category.id), str(other.id)], "action": "deactivate"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 200
        assert response.json()["data"]["modified_count"] == 2
        assert response.json()["message"] == "Successfully updated 2 category(ies)"

    def test_bulk_invalid_action(self, client, admin, category, auth_headers):
        response = client.put(
            "/api/categories/bulk",
            json={"categoryIds": [str(category.id)], "action": "explode"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid action specified"

    def test_bulk_update_rejects_string_flag(self, client, db, admin, category, auth_headers):
        response = client.put(
            "/api/categories/bulk",
            json={"categoryIds": [str(category.id)], "action": "update", "data": {"isActive": "false"}},
            headers=auth_headers(admin),
        )

        assert response.status_code == 400
        assert response.json()["message"] == "isActive must be true or false"
        db.refresh(category)
        assert category.is_active is True

    def test_bulk_update_fields(self, client, db, admin, category, auth_headers):
        response = client.put(
            "/api/categories/bulk",
            json={
                "categoryIds": [str(category.id)],
                "action": "update",
                "data": {"isActive": False, "color": "#123abc"},
            },
            headers=auth_headers(admin),
        )

        assert response.json()["data"]["modified_count"] == 1
        db.refresh(category)
        assert category.is_active is False
        assert category.color == "#123abc"

    def test_bulk_requires_ids(self, client, admin, auth_headers):
        response = client.put(
            "/api/categories/bulk",
            json={"categoryIds": [], "action": "activate"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Please provide valid category IDs"
