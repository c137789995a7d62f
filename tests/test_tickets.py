# tests/test_tickets.py
"""Ticket lifecycle through the HTTP API"""
import re
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from quickdesk.models import Category, Notification, NotificationType, Ticket
from quickdesk.services.email_service import EmailDeliveryError
from quickdesk.services.notification_service import NotificationService
from quickdesk.services.ticket_service import TicketService
from quickdesk.utils.datetime_utils import get_utc_now
from quickdesk.utils.exceptions import ValidationError


class TestCreateTicket:
    """Validation, identifiers and attachments on creation"""

    def test_create_ticket(self, client, requester, auth_headers, category):
        response = client.post(
            "/api/tickets",
            data={
                "title": "Printer not working",
                "description": "My printer on the 3rd floor is jammed",
                "priority": "high",
                "category": str(category.id),
                "tags": "printer, hardware ,",
            },
            headers=auth_headers(requester),
        )

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Ticket created successfully"
        ticket = body["data"]["ticket"]
        assert ticket["status"] == "open"
        assert ticket["priority"] == "high"
        assert ticket["tags"] == ["printer", "hardware"]
        assert ticket["created_by"]["email"] == "requester@example.com"
        assert ticket["category"]["name"] == "Technical Support"
        today = get_utc_now().strftime("%Y%m%d")
        assert re.fullmatch(rf"TKT-{today}-\d{{3}}", ticket["ticket_id"])

    def test_subject_field_alias(self, client, requester, auth_headers, category):
        response = client.post(
            "/api/tickets",
            data={
                "subject": "VPN keeps dropping",
                "description": "Connection drops every ten minutes",
                "category": str(category.id),
            },
            headers=auth_headers(requester),
        )

        assert response.status_code == 201
        ticket = response.json()["data"]["ticket"]
        assert ticket["title"] == "VPN keeps dropping"
        assert ticket["priority"] == "medium"

    def test_short_subject_rejected(self, client, requester, auth_headers, category):
        response = client.post(
            "/api/tickets",
            data={
                "title": "abcd",
                "description": "My printer on the 3rd floor is jammed",
                "category": str(category.id),
            },
            headers=auth_headers(requester),
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Ticket subject must be at least 5 characters long"

    def test_short_description_rejected(self, client, requester, auth_headers, category):
        response = client.post(
            "/api/tickets",
            data={"title": "Printer not working", "description": "jammed", "category": str(category.id)},
            headers=auth_headers(requester),
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Ticket description must be at least 10 characters long"

    def test_invalid_priority_rejected(self, client, requester, auth_headers, category):
        response = client.post(
            "/api/tickets",
            data={
                "title": "Printer not working",
                "description": "My printer on the 3rd floor is jammed",
                "priority": "critical",
                "category": str(category.id),
            },
            headers=auth_headers(requester),
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid priority. Must be one of: low, medium, high, urgent"

    def test_inactive_category_rejected(self, client, db, requester, auth_headers, category):
        category.is_active = False
        db.commit()

        response = client.post(
            "/api/tickets",
            data={
                "title": "Printer not working",
                "description": "My printer on the 3rd floor is jammed",
                "category": str(category.id),
            },
            headers=auth_headers(requester),
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Category is inactive"

    def test_unknown_category_rejected(self, client, requester, auth_headers):
        response = client.post(
            "/api/tickets",
            data={
                "title": "Printer not working",
                "description": "My printer on the 3rd floor is jammed",
                "category": "00000000-0000-0000-0000-000000000000",
            },
            headers=auth_headers(requester),
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid category"

    def test_sequential_ids_same_day(self, create_ticket, requester):
        first = create_ticket(requester)
        second = create_ticket(requester, title="Second printer issue")

        assert first["ticket_id"].endswith("-001")
        assert second["ticket_id"].endswith("-002")

    def test_out_of_sequence_id_continues_sequence(self, db, create_ticket, requester, category):
        # An out-of-sequence id moves the sequence forward
        today = get_utc_now().strftime("%Y%m%d")
        db.add(Ticket(
            ticket_id=f"TKT-{today}-002",
            title="Pre-existing ticket",
            description="Inserted with an out-of-sequence id",
            category_id=category.id,
            created_by_id=requester.id,
        ))
        db.commit()

        ticket = create_ticket(requester)

        assert ticket["ticket_id"] == f"TKT-{today}-003"

    def test_ticket_id_collision_retries(self, monkeypatch, create_ticket, requester):
        first = create_ticket(requester)
        # Simulates a concurrent request that computed the same id
        monkeypatch.setattr(
            TicketService,
            "next_ticket_id",
            staticmethod(lambda db, now, offset=0: f"TKT-{now:%Y%m%d}-{1 + offset:03d}"),
        )

        second = create_ticket(requester, title="Second printer issue")

        assert first["ticket_id"].endswith("-001")
        assert second["ticket_id"].endswith("-002")

    def test_next_ticket_id_format(self, db):
        now = get_utc_now()

        assert TicketService.next_ticket_id(db, now) == f"TKT-{now:%Y%m%d}-001"
        assert TicketService.next_ticket_id(db, now, offset=2) == f"TKT-{now:%Y%m%d}-003"

    def test_sequence_survives_deletions(self, client, create_ticket, requester, admin, auth_headers):
        tickets = [create_ticket(requester, title=f"Broken laptop number {n}") for n in range(7)]
        for ticket in tickets[:5]:
            response = client.delete(f"/api/tickets/{ticket['id']}", headers=auth_headers(admin))
            assert response.status_code == 200

        ticket = create_ticket(requester)

        assert ticket["ticket_id"].endswith("-008")

    def test_sequence_beyond_three_digits(self, db, requester, category):
        now = get_utc_now()
        for seq in ("999", "1000"):
            db.add(Ticket(
                ticket_id=f"TKT-{now:%Y%m%d}-{seq}",
                title="Bulk import ticket",
                description="Imported from the previous helpdesk",
                category_id=category.id,
                created_by_id=requester.id,
            ))
        db.commit()

        assert TicketService.next_ticket_id(db, now) == f"TKT-{now:%Y%m%d}-1001"

    def test_attachment_saved(self, client, settings, requester, auth_headers, category):
        response = client.post(
            "/api/tickets",
            data={
                "title": "Screen flickers",
                "description": "Monitor flickers after lunch every day",
                "category": str(category.id),
            },
            files=[("attachments", ("notes.txt", b"flicker log", "text/plain"))],
            headers=auth_headers(requester),
        )

        assert response.status_code == 201
        attachments = response.json()["data"]["ticket"]["attachments"]
        assert len(attachments) == 1
        assert attachments[0]["original_name"] == "notes.txt"
        assert attachments[0]["url"].startswith("/uploads/attachments-")
        assert (Path(settings.upload_dir) / attachments[0]["filename"]).exists()

    def test_rejected_ticket_removes_saved_files(self, client, settings, requester, auth_headers, category):
        response = client.post(
            "/api/tickets",
            data={"title": "abcd", "description": "Monitor flickers after lunch", "category": str(category.id)},
            files=[("attachments", ("notes.txt", b"flicker log", "text/plain"))],
            headers=auth_headers(requester),
        )

        assert response.status_code == 400
        assert list(Path(settings.upload_dir).iterdir()) == []

    def test_database_failure_removes_saved_files(self, app, monkeypatch, settings, requester, auth_headers, category):
        def failing_insert(db, ticket):
            raise OperationalError("INSERT INTO ticket", {}, Exception("disk I/O error"))

        monkeypatch.setattr(TicketService, "_insert_with_ticket_id", staticmethod(failing_insert))
        client = TestClient(app, raise_server_exceptions=False)

        response = client.post(
            "/api/tickets",
            data={
                "title": "Screen flickers",
                "description": "Monitor flickers after lunch every day",
                "category": str(category.id),
            },
            files=[("attachments", ("notes.txt", b"flicker log", "text/plain"))],
            headers=auth_headers(requester),
        )

        assert response.status_code == 500
        assert list(Path(settings.upload_dir).iterdir()) == []

    def test_disallowed_file_type(self, client, requester, auth_headers, category):
        response = client.post(
            "/api/tickets",
            data={
                "title": "Screen flickers",
                "description": "Monitor flickers after lunch every day",
                "category": str(category.id),
            },
            files=[("attachments", ("run.exe", b"MZ", "application/octet-stream"))],
            headers=auth_headers(requester),
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid file type. Only images, PDFs, and documents are allowed."

    def test_too_many_files(self, client, requester, auth_headers, category):
        files = [("attachments", (f"f{i}.txt", b"x", "text/plain")) for i in range(6)]
        response = client.post(
            "/api/tickets",
            data={
                "title": "Screen flickers",
                "description": "Monitor flickers after lunch every day",
                "category": str(category.id),
            },
            files=files,
            headers=auth_headers(requester),
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Too many files. Maximum is 5 files."


class TestViewAndList:
    """Visibility rules for requesters and staff"""

    def test_requester_lists_only_own(self, client, create_ticket, requester, other_requester, auth_headers):
        create_ticket(requester)
        create_ticket(other_requester, title="Other person's ticket")

        response = client.get("/api/tickets", headers=auth_headers(requester))

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["pagination"]["total"] == 1
        assert data["tickets"][0]["title"] == "Printer not working"

    def test_staff_lists_all_and_filters(self, client, create_ticket, requester, other_requester, agent, auth_headers):
        create_ticket(requester, priority="low")
        create_ticket(other_requester, title="Keyboard missing keys", priority="urgent")

        everything = client.get("/api/tickets", headers=auth_headers(agent)).json()["data"]
        urgent = client.get("/api/tickets?priority=urgent", headers=auth_headers(agent)).json()["data"]
        searched = client.get("/api/tickets?search=keyboard", headers=auth_headers(agent)).json()["data"]

        assert everything["pagination"]["total"] == 2
        assert [t["title"] for t in urgent["tickets"]] == ["Keyboard missing keys"]
        assert [t["title"] for t in searched["tickets"]] == ["Keyboard missing keys"]

    def test_my_tickets_for_agent(self, client, create_ticket, requester, agent, auth_headers):
        ticket = create_ticket(requester)
        create_ticket(requester, title="Unassigned ticket")
        client.put(
            f"/api/tickets/{ticket['id']}/assign",
            json={"assignedTo": str(agent.id)},
            headers=auth_headers(agent),
        )

        response = client.get("/api/tickets?myTickets=true", headers=auth_headers(agent))

        tickets = response.json()["data"]["tickets"]
        assert [t["id"] for t in tickets] == [ticket["id"]]

    def test_requester_cannot_view_other_ticket(self, client, create_ticket, requester, other_requester, auth_headers):
        ticket = create_ticket(other_requester)

        response = client.get(f"/api/tickets/{ticket['id']}", headers=auth_headers(requester))

        assert response.status_code == 403
        assert response.json()["message"] == "Access denied. You can only view your own tickets."

    def test_missing_ticket_is_404(self, client, requester, auth_headers):
        response = client.get(
            "/api/tickets/00000000-0000-0000-0000-000000000000",
            headers=auth_headers(requester),
        )

        assert response.status_code == 404
        assert response.json()["message"] == "Ticket not found"

    def test_internal_comments_hidden_from_requester(self, client, create_ticket, requester, agent, auth_headers):
        ticket = create_ticket(requester)
        client.post(
            f"/api/tickets/{ticket['id']}/comments",
            json={"content": "Public reply", "isInternal": False},
            headers=auth_headers(agent),
        )
        client.post(
            f"/api/tickets/{ticket['id']}/comments",
            json={"content": "Escalate to vendor", "isInternal": True},
            headers=auth_headers(agent),
        )

        as_requester = client.get(f"/api/tickets/{ticket['id']}", headers=auth_headers(requester))
        as_agent = client.get(f"/api/tickets/{ticket['id']}", headers=auth_headers(agent))

        assert [c["content"] for c in as_requester.json()["data"]["ticket"]["comments"]] == ["Public reply"]
        assert len(as_agent.json()["data"]["ticket"]["comments"]) == 2


class TestUpdateTicket:
    """Role-scoped partial updates"""

    def test_owner_edits_open_ticket(self, client, create_ticket, requester, auth_headers):
        ticket = create_ticket(requester)

        response = client.put(
            f"/api/tickets/{ticket['id']}",
            json={"title": "Printer still not working", "status": "closed"},
            headers=auth_headers(requester),
        )

        assert response.status_code == 200
        updated = response.json()["data"]["ticket"]
        assert updated["title"] == "Printer still not working"
        # status is outside a requester's capability set and is ignored
        assert updated["status"] == "open"

    def test_owner_locked_once_in_progress(self, client, create_ticket, requester, agent, auth_headers):
        ticket = create_ticket(requester)
        client.put(
            f"/api/tickets/{ticket['id']}",
            json={"status": "in-progress"},
            headers=auth_headers(agent),
        )

        response = client.put(
            f"/api/tickets/{ticket['id']}",
            json={"title": "Printer still not working"},
            headers=auth_headers(requester),
        )

        assert response.status_code == 403
        assert response.json()["message"] == "You can only edit open tickets."

    def test_unrelated_requester_forbidden(self, client, create_ticket, requester, other_requester, auth_headers):
        ticket = create_ticket(requester)

        response = client.put(
            f"/api/tickets/{ticket['id']}",
            json={"title": "Hijacked title"},
            headers=auth_headers(other_requester),
        )

        assert response.status_code == 403

    def test_agent_resolves_and_participants_notified(self, client, db, create_ticket, requester, agent, auth_headers):
        ticket = create_ticket(requester)

        response = client.put(
            f"/api/tickets/{ticket['id']}",
            json={"status": "resolved", "resolution": "Cleared the paper jam"},
            headers=auth_headers(agent),
        )

        assert response.status_code == 200
        updated = response.json()["data"]["ticket"]
        assert updated["status"] == "resolved"
        assert updated["resolved_at"] is not None
        assert updated["resolved_by"]["id"] == str(agent.id)

        db.expire_all()
        notifications = db.query(Notification).filter(Notification.recipient_id == requester.id).all()
        assert [n.type for n in notifications] == [NotificationType.TICKET_RESOLVED]
        assert notifications[0].title == f"Ticket Resolved - {ticket['ticket_id']}"
        assert notifications[0].action_url == f"/tickets/{ticket['id']}"

    def test_assign_to_requester_rejected_on_update(self, client, create_ticket, requester, other_requester, agent, auth_headers):
        ticket = create_ticket(requester)

        response = client.put(
            f"/api/tickets/{ticket['id']}",
            json={"assignedTo": str(other_requester.id)},
            headers=auth_headers(agent),
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid agent assignment"


class TestAssignCloseReopen:
    """Assignment, resolution and reopening"""

    def test_assign_forces_in_progress_and_notifies(self, client, db, create_ticket, requester, agent, admin, auth_headers):
        ticket = create_ticket(requester)

        response = client.put(
            f"/api/tickets/{ticket['id']}/assign",
            json={"assignedTo": str(agent.id)},
            headers=auth_headers(admin),
        )

        assert response.status_code == 200
        assigned = response.json()["data"]["ticket"]
        assert assigned["status"] == "in-progress"
        assert assigned["assigned_to"]["id"] == str(agent.id)

        db.expire_all()
        notes = db.query(Notification).filter(Notification.recipient_id == agent.id).all()
        assert [n.type for n in notes] == [NotificationType.TICKET_ASSIGNED]

    def test_reassigning_same_agent_does_not_renotify(self, client, db, create_ticket, requester, agent, auth_headers):
        ticket = create_ticket(requester)
        for _ in range(2):
            client.put(
                f"/api/tickets/{ticket['id']}/assign",
                json={"assignedTo": str(agent.id)},
                headers=auth_headers(agent),
            )

        db.expire_all()
        assert db.query(Notification).filter(Notification.recipient_id == agent.id).count() == 1

    def test_assign_to_user_role_rejected(self, client, create_ticket, requester, other_requester, agent, auth_headers):
        ticket = create_ticket(requester)

        response = client.put(
            f"/api/tickets/{ticket['id']}/assign",
            json={"assignedTo": str(other_requester.id)},
            headers=auth_headers(agent),
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid agent assignment"

    def test_requester_cannot_assign(self, client, create_ticket, requester, agent, auth_headers):
        ticket = create_ticket(requester)

        response = client.put(
            f"/api/tickets/{ticket['id']}/assign",
            json={"assignedTo": str(agent.id)},
            headers=auth_headers(requester),
        )

        assert response.status_code == 403

    def test_close_requires_resolution(self, client, create_ticket, requester, agent, auth_headers):
        ticket = create_ticket(requester)

        response = client.put(
            f"/api/tickets/{ticket['id']}/close",
            json={"resolution": "   "},
            headers=auth_headers(agent),
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Resolution is required to close a ticket"

    def test_close_then_close_again(self, client, create_ticket, requester, agent, auth_headers):
        ticket = create_ticket(requester)
        url = f"/api/tickets/{ticket['id']}/close"

        first = client.put(url, json={"resolution": "Replaced toner"}, headers=auth_headers(agent))
        second = client.put(url, json={"resolution": "Again"}, headers=auth_headers(agent))

        assert first.status_code == 200
        closed = first.json()["data"]["ticket"]
        assert closed["status"] == "resolved"
        assert closed["resolution"] == "Replaced toner"
        assert closed["resolved_by"]["id"] == str(agent.id)
        assert second.status_code == 400
        assert second.json()["message"] == "Ticket is already resolved or closed"

    def test_requester_cannot_close(self, client, create_ticket, requester, auth_headers):
        ticket = create_ticket(requester)

        response = client.put(
            f"/api/tickets/{ticket['id']}/close",
            json={"resolution": "Fixed it myself"},
            headers=auth_headers(requester),
        )

        assert response.status_code == 403

    def test_reopen_clears_resolution(self, client, create_ticket, requester, agent, auth_headers):
        ticket = create_ticket(requester)
        client.put(
            f"/api/tickets/{ticket['id']}/close",
            json={"resolution": "Replaced toner"},
            headers=auth_headers(agent),
        )

        response = client.put(f"/api/tickets/{ticket['id']}/reopen", headers=auth_headers(requester))

        assert response.status_code == 200
        reopened = response.json()["data"]["ticket"]
        assert reopened["status"] == "open"
        assert reopened["resolution"] is None
        assert reopened["resolved_at"] is None
        assert reopened["resolved_by"] is None

    def test_reopen_only_from_resolved(self, client, create_ticket, requester, auth_headers):
        ticket = create_ticket(requester)

        response = client.put(f"/api/tickets/{ticket['id']}/reopen", headers=auth_headers(requester))

        assert response.status_code == 400
        assert response.json()["message"] == "Only resolved tickets can be reopened"


class TestCommentsAndRating:
    """Comments and satisfaction ratings"""

    def test_comment_requires_content(self, client, create_ticket, requester, auth_headers):
        ticket = create_ticket(requester)

        response = client.post(
            f"/api/tickets/{ticket['id']}/comments",
            json={"content": ""},
            headers=auth_headers(requester),
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Comment content is required"

    def test_requester_internal_flag_ignored(self, client, create_ticket, requester, auth_headers):
        ticket = create_ticket(requester)

        response = client.post(
            f"/api/tickets/{ticket['id']}/comments",
            json={"content": "Any update?", "isInternal": True},
            headers=auth_headers(requester),
        )

        assert response.status_code == 201
        assert response.json()["data"]["comment"]["is_internal"] is False

    def test_unrelated_requester_cannot_comment(self, client, create_ticket, requester, other_requester, auth_headers):
        ticket = create_ticket(requester)

        response = client.post(
            f"/api/tickets/{ticket['id']}/comments",
            json={"content": "Me too"},
            headers=auth_headers(other_requester),
        )

        assert response.status_code == 403

    def _resolve(self, client, ticket, agent, auth_headers):
        client.put(
            f"/api/tickets/{ticket['id']}/close",
            json={"resolution": "Replaced toner"},
            headers=auth_headers(agent),
        )

    def test_rate_resolved_ticket(self, client, create_ticket, requester, agent, auth_headers):
        ticket = create_ticket(requester)
        self._resolve(client, ticket, agent, auth_headers)

        response = client.post(
            f"/api/tickets/{ticket['id']}/rate",
            json={"rating": 5, "feedback": "Quick fix"},
            headers=auth_headers(requester),
        )

        assert response.status_code == 200
        assert response.json()["data"]["rating"] == 5

        fetched = client.get(f"/api/tickets/{ticket['id']}", headers=auth_headers(requester))
        assert fetched.json()["data"]["ticket"]["satisfaction_rating"]["feedback"] == "Quick fix"

    def test_rate_open_ticket_rejected(self, client, create_ticket, requester, auth_headers):
        ticket = create_ticket(requester)

        response = client.post(
            f"/api/tickets/{ticket['id']}/rate",
            json={"rating": 4},
            headers=auth_headers(requester),
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Only resolved or closed tickets can be rated"

    def test_rate_out_of_range(self, client, create_ticket, requester, agent, auth_headers):
        ticket = create_ticket(requester)
        self._resolve(client, ticket, agent, auth_headers)

        for rating in (0, 6, 3.5):
            response = client.post(
                f"/api/tickets/{ticket['id']}/rate",
                json={"rating": rating},
                headers=auth_headers(requester),
            )
            assert response.status_code == 400
            assert response.json()["message"] == "Rating must be between 1 and 5"

    def test_rate_overflowing_number(self, client, create_ticket, requester, agent, auth_headers):
        ticket = create_ticket(requester)
        self._resolve(client, ticket, agent, auth_headers)

        response = client.post(
            f"/api/tickets/{ticket['id']}/rate",
            content=b'{"rating": 1e400}',
            headers={**auth_headers(requester), "Content-Type": "application/json"},
        )

        assert response.status_code == 400

    def test_rate_non_finite_rejected(self, db, create_ticket, requester):
        ticket = create_ticket(requester)

        for rating in (float("inf"), float("-inf"), float("nan")):
            with pytest.raises(ValidationError, match="Rating must be between 1 and 5"):
                TicketService.rate_ticket(db, requester, ticket["id"], rating)

    def test_only_creator_rates(self, client, create_ticket, requester, agent, auth_headers):
        ticket = create_ticket(requester)
        self._resolve(client, ticket, agent, auth_headers)

        response = client.post(
            f"/api/tickets/{ticket['id']}/rate",
            json={"rating": 1},
            headers=auth_headers(agent),
        )

        assert response.status_code == 403
        assert response.json()["message"] == "Only the ticket creator can rate the ticket"


class TestDeleteAndStats:
    """Admin deletion and ticket statistics"""

    def test_admin_deletes_ticket(self, client, db, create_ticket, requester, admin, auth_headers):
        ticket = create_ticket(requester)

        response = client.delete(f"/api/tickets/{ticket['id']}", headers=auth_headers(admin))

        assert response.status_code == 200
        db.expire_all()
        assert db.query(Ticket).count() == 0

    def test_agent_cannot_delete(self, client, create_ticket, requester, agent, auth_headers):
        ticket = create_ticket(requester)

        response = client.delete(f"/api/tickets/{ticket['id']}", headers=auth_headers(agent))

        assert response.status_code == 403

    def test_stats_scoped_to_requester(self, client, create_ticket, requester, other_requester, agent, auth_headers):
        mine = create_ticket(requester, priority="urgent")
        create_ticket(other_requester)
        client.put(
            f"/api/tickets/{mine['id']}/close",
            json={"resolution": "Done"},
            headers=auth_headers(agent),
        )

        own = client.get("/api/tickets/stats", headers=auth_headers(requester)).json()["data"]
        overall = client.get("/api/tickets/stats", headers=auth_headers(agent)).json()["data"]

        assert own["total_tickets"] == 1
        assert own["resolved_tickets"] == 1
        assert own["priority_stats"] == {"urgent": 1}
        assert own["resolution_time"]["count"] == 1
        assert overall["total_tickets"] == 2
        assert overall["open_tickets"] == 1
        assert sum(month["count"] for month in overall["monthly_stats"]) == 2


class TestSideEffectFailures:
    """Email and notification failures never change the HTTP outcome"""

    def _failing_email(self, app, monkeypatch):
        def send_ticket_notification(ticket, event="created"):
            raise EmailDeliveryError("SMTP relay refused the message")

        monkeypatch.setattr(app.state.email_service, "send_ticket_notification", send_ticket_notification)

    def test_close_succeeds_when_email_fails(self, app, client, monkeypatch, create_ticket, requester, agent, auth_headers):
        ticket = create_ticket(requester)
        self._failing_email(app, monkeypatch)

        response = client.put(
            f"/api/tickets/{ticket['id']}/close",
            json={"resolution": "Cleared the paper jam"},
            headers=auth_headers(agent),
        )

        assert response.status_code == 200
        assert response.json()["data"]["ticket"]["status"] == "resolved"

    def test_status_update_succeeds_when_email_fails(self, app, client, monkeypatch, create_ticket, requester, agent, auth_headers):
        ticket = create_ticket(requester)
        self._failing_email(app, monkeypatch)

        response = client.put(
            f"/api/tickets/{ticket['id']}",
            json={"status": "in-progress"},
            headers=auth_headers(agent),
        )

        assert response.status_code == 200
        assert response.json()["data"]["ticket"]["status"] == "in-progress"

    def test_create_succeeds_when_email_fails(self, app, monkeypatch, create_ticket, requester):
        self._failing_email(app, monkeypatch)

        ticket = create_ticket(requester)

        assert ticket["status"] == "open"

    def test_close_succeeds_when_notifications_fail(self, client, db, monkeypatch, create_ticket, requester, agent, auth_headers):
        ticket = create_ticket(requester)

        def broken_notification(*args, **kwargs):
            raise OperationalError("INSERT INTO notification", {}, Exception("database is locked"))

        monkeypatch.setattr(NotificationService, "create_ticket_notification", broken_notification)

        response = client.put(
            f"/api/tickets/{ticket['id']}/close",
            json={"resolution": "Cleared the paper jam"},
            headers=auth_headers(agent),
        )

        assert response.status_code == 200
        assert response.json()["data"]["ticket"]["status"] == "resolved"
        db.expire_all()
        stored = db.query(Ticket).filter(Ticket.ticket_id == ticket["ticket_id"]).one()
        assert stored.resolution == "Cleared the paper jam"
        assert db.query(Notification).count() == 0
