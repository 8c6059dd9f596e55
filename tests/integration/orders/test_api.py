"""Integration tests for the Order API endpoints.

Covers:
- POST   /api/v1/orders/                       submission
- GET    /api/v1/orders/ and /{id}/            list and detail, per role
- PATCH  /api/v1/orders/{id}/                  status transitions, If-Match
- POST   /api/v1/orders/{id}/sub-processes/    checklist ticks
- POST   /api/v1/orders/{id}/delivery/         delivery method
- POST   /api/v1/orders/{id}/courier/          courier pick-up
- POST   /api/v1/orders/{id}/assign/           single assignee
- POST   /api/v1/orders/{id}/attachments/      file or link references
- POST   /api/v1/orders/{id}/comments/         comments
- GET    /api/v1/orders/{id}/history/          audit trail
- GET    /api/v1/orders/{id}/changes/?since=V  change polling
"""

from __future__ import annotations

import pytest

from modules.orders.constants import OrderStatus
from modules.orders.stages import PREPRESS_SUB_PROCESSES

pytestmark = pytest.mark.integration

URL = "/api/v1/orders/"
MISSING = "0190a1b2-c3d4-7e5f-8a9b-0c1d2e3f4a5b"


def _detail(order, suffix=""):
    return f"{URL}{order.id}/{suffix}"


@pytest.fixture()
def as_user(api_client):
    def _login(user):
        api_client.force_authenticate(user=user)
        return api_client

    return _login


# ---------------------------------------------------------------------------
# Submission and reads
# ---------------------------------------------------------------------------


class TestSubmit:
    def test_client_submits_order(self, as_user, client_user, client_record):
        response = as_user(client_user).post(
            URL,
            {
                "client_id": str(client_record.id),
                "title": "Roll-up banner",
                "order_type": "Existing With Changes",
                "specifications": {"width_cm": 85, "height_cm": 200},
            },
            format="json",
        )

        assert response.status_code == 201
        data = response.data
        assert data["status"] == "Submitted"
        assert data["progress"] == 25
        assert data["version"] == 1
        assert data["order_number"].startswith("ORD-")
        assert data["order_type"] == "Existing With Changes"

    def test_unknown_client(self, as_user, manager_user):
        response = as_user(manager_user).post(
            URL, {"client_id": MISSING, "title": "Ghost"}, format="json"
        )
        assert response.status_code == 404

    def test_missing_title(self, as_user, client_user, client_record):
        response = as_user(client_user).post(
            URL, {"client_id": str(client_record.id)}, format="json"
        )
        assert response.status_code == 400


class TestRead:
    def test_detail(self, as_user, designer_user, order):
        response = as_user(designer_user).get(_detail(order))
        assert response.status_code == 200
        assert response.data["id"] == str(order.id)
        assert set(response.data["stages"]) == {
            "submission",
            "design",
            "prepress",
            "delivery",
        }

    def test_bad_uuid(self, as_user, designer_user):
        assert as_user(designer_user).get(f"{URL}not-a-uuid/").status_code == 400

    def test_missing(self, as_user, designer_user):
        assert as_user(designer_user).get(f"{URL}{MISSING}/").status_code == 404

    def test_other_client_gets_404(self, as_user, make_user, order):
        stranger = make_user("client", "stranger")
        assert as_user(stranger).get(_detail(order)).status_code == 404

    def test_list_is_paginated_and_scoped(self, as_user, make_user, manager_user, order):
        staff_view = as_user(manager_user).get(URL)
        assert staff_view.status_code == 200
        assert staff_view.data["count"] == 1

        stranger = make_user("client", "stranger")
        assert as_user(stranger).get(URL).data["count"] == 0

    def test_list_filter_by_status(self, as_user, manager_user, order):
        api = as_user(manager_user)
        assert api.get(URL, {"status": "Submitted"}).data["count"] == 1
        assert api.get(URL, {"status": "Designing"}).data["count"] == 0


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


class TestTransition:
    def test_designer_starts_design(self, as_user, designer_user, order):
        response = as_user(designer_user).patch(
            _detail(order), {"status": "Designing", "notes": "On it"}, format="json"
        )
        assert response.status_code == 200
        assert response.data["status"] == "Designing"
        assert response.data["version"] == 2

    def test_invalid_transition_is_400(self, as_user, manager_user, order):
        response = as_user(manager_user).patch(
            _detail(order), {"status": "Completed"}, format="json"
        )
        assert response.status_code == 400
        assert response.data["code"] == "InvalidTransition"

    def test_unknown_status_value_is_400(self, as_user, manager_user, order):
        response = as_user(manager_user).patch(
            _detail(order), {"status": "Printing"}, format="json"
        )
        assert response.status_code == 400

    def test_wrong_role_is_403(self, as_user, prepress_user, order):
        response = as_user(prepress_user).patch(
            _detail(order), {"status": "Designing"}, format="json"
        )
        assert response.status_code == 403
        assert response.data["code"] == "Unauthorized"

    def test_precondition_is_400_with_reason(self, as_user, designer_user, order, advance):
        advance(order, OrderStatus.DESIGNING)
        response = as_user(designer_user).patch(
            _detail(order), {"status": "Design Done"}, format="json"
        )
        assert response.status_code == 400
        assert response.data["code"] == "PreconditionNotMet"
        assert "no design file or link" in response.data["detail"]

    def test_stale_if_match_is_409(self, as_user, designer_user, manager_user, order):
        as_user(manager_user).patch(_detail(order), {"status": "On Hold"}, format="json")

        response = as_user(designer_user).patch(
            _detail(order), {"status": "Designing"}, format="json", HTTP_IF_MATCH='"1"'
        )
        assert response.status_code == 409
        assert response.data["current_version"] == 2

    def test_matching_if_match(self, as_user, designer_user, order):
        response = as_user(designer_user).patch(
            _detail(order), {"status": "Designing"}, format="json", HTTP_IF_MATCH='"1"'
        )
        assert response.status_code == 200

    def test_non_integer_version(self, as_user, designer_user, order):
        response = as_user(designer_user).patch(
            _detail(order), {"status": "Designing", "version": "abc"}, format="json"
        )
        assert response.status_code == 400

    def test_owning_client_cancels(self, as_user, client_user, order):
        response = as_user(client_user).patch(
            _detail(order), {"status": "Cancelled"}, format="json"
        )
        assert response.status_code == 200
        assert response.data["status"] == "Cancelled"


# ---------------------------------------------------------------------------
# Production commands
# ---------------------------------------------------------------------------


class TestProductionCommands:
    def test_upload_then_design_done(self, as_user, designer_user, order, advance):
        advance(order, OrderStatus.DESIGNING)
        api = as_user(designer_user)

        attached = api.post(
            _detail(order, "attachments/"),
            {"stage": "design", "kind": "link", "reference": "https://files.test/v2.pdf"},
            format="json",
        )
        assert attached.status_code == 201
        assert attached.data["design_links"][0]["reference"] == "https://files.test/v2.pdf"

        done = api.patch(_detail(order), {"status": "Design Done"}, format="json")
        assert done.status_code == 200
        assert done.data["progress"] == 50

    def test_client_cannot_supply_design_artwork(self, as_user, client_user, order):
        response = as_user(client_user).post(
            _detail(order, "attachments/"),
            {"stage": "design", "kind": "file", "reference": "uploads/logo.svg"},
            format="json",
        )
        assert response.status_code == 403

        brief = as_user(client_user).post(
            _detail(order, "attachments/"),
            {"stage": "submission", "kind": "file", "reference": "uploads/logo.svg"},
            format="json",
        )
        assert brief.status_code == 201

    def test_sub_process_tick(self, as_user, prepress_user, order, advance):
        advance(order, OrderStatus.IN_PREPRESS)
        response = as_user(prepress_user).post(
            _detail(order, "sub-processes/"),
            {"stage": "prepress", "sub_process": "laserImaging"},
            format="json",
        )
        assert response.status_code == 200
        sub = response.data["stages"]["prepress"]["sub_processes"]["laserImaging"]
        assert sub["status"] == "Completed"
        assert sub["completed_by"] == str(prepress_user.pk)

    def test_unknown_sub_process(self, as_user, prepress_user, order, advance):
        advance(order, OrderStatus.IN_PREPRESS)
        response = as_user(prepress_user).post(
            _detail(order, "sub-processes/"),
            {"stage": "prepress", "sub_process": "varnish"},
            format="json",
        )
        assert response.status_code == 400
        assert response.data["code"] == "UnknownSubProcess"

    def test_shipping_flow(
        self, as_user, designer_user, prepress_user, courier_user, order, advance
    ):
        advance(order, OrderStatus.IN_PREPRESS)
        for name in PREPRESS_SUB_PROCESSES:
            as_user(prepress_user).post(
                _detail(order, "sub-processes/"),
                {"stage": "prepress", "sub_process": name},
                format="json",
            )

        chosen = as_user(designer_user).post(
            _detail(order, "delivery/"),
            {"mode": "shipping-company", "shipment_company": "Middle East"},
            format="json",
        )
        assert chosen.status_code == 200
        info = chosen.data["stages"]["delivery"]["courier_info"]
        assert info["mode"] == "shipping-company"

        as_user(designer_user).patch(
            _detail(order), {"status": "Ready for Delivery"}, format="json"
        )
        blocked = as_user(courier_user).patch(
            _detail(order), {"status": "Completed"}, format="json"
        )
        assert blocked.status_code == 400

        claimed = as_user(courier_user).post(
            _detail(order, "courier/"), {"shipment_label": "AWB-9"}, format="json"
        )
        assert claimed.status_code == 200

        done = as_user(courier_user).patch(
            _detail(order), {"status": "Completed"}, format="json"
        )
        assert done.status_code == 200
        assert done.data["progress"] == 100

    def test_ready_for_delivery_without_mode_is_400(
        self, as_user, designer_user, prepress_user, order, advance
    ):
        advance(order, OrderStatus.IN_PREPRESS)
        for name in PREPRESS_SUB_PROCESSES:
            as_user(prepress_user).post(
                _detail(order, "sub-processes/"),
                {"stage": "prepress", "sub_process": name},
                format="json",
            )

        response = as_user(designer_user).patch(
            _detail(order), {"status": "Ready for Delivery"}, format="json"
        )
        assert response.status_code == 400
        assert response.data["code"] == "PreconditionNotMet"
        assert "no delivery mode" in response.data["detail"]

    def test_delivery_requires_staff(self, as_user, client_user, order):
        response = as_user(client_user).post(
            _detail(order, "delivery/"), {"mode": "direct"}, format="json"
        )
        assert response.status_code == 403

    def test_assign(self, as_user, manager_user, designer_user, order):
        response = as_user(manager_user).post(
            _detail(order, "assign/"),
            {"assignee_id": str(designer_user.pk)},
            format="json",
        )
        assert response.status_code == 200
        assert response.data["assigned_to"] == str(designer_user.pk)

    def test_comment(self, as_user, client_user, order):
        response = as_user(client_user).post(
            _detail(order, "comments/"), {"text": "Can we add a QR code?"}, format="json"
        )
        assert response.status_code == 201
        assert response.data["comments"][0]["text"] == "Can we add a QR code?"


# ---------------------------------------------------------------------------
# History and polling
# ---------------------------------------------------------------------------


class TestHistoryAndChanges:
    def test_history_oldest_first(self, as_user, designer_user, order):
        api = as_user(designer_user)
        api.patch(_detail(order), {"status": "Designing"}, format="json")

        response = api.get(_detail(order, "history/"))
        assert response.status_code == 200
        assert [e["action"] for e in response.data] == ["Order Created", "Status Changed"]
        assert response.data[1]["details"] == "Submitted to Designing"
        assert response.data[1]["actor_id"] == str(designer_user.pk)

    def test_changes(self, as_user, designer_user, order):
        api = as_user(designer_user)
        unchanged = api.get(_detail(order, "changes/"), {"since": 1})
        assert unchanged.status_code == 200
        assert unchanged.data["changed"] is False

        api.patch(_detail(order), {"status": "Designing"}, format="json")
        changed = api.get(_detail(order, "changes/"), {"since": 1})
        assert changed.data == {
            "order_id": str(order.id),
            "changed": True,
            "version": 2,
            "poll_interval_seconds": 60,
        }

    def test_changes_requires_integer(self, as_user, designer_user, order):
        response = as_user(designer_user).get(_detail(order, "changes/"), {"since": "x"})
        assert response.status_code == 400

    def test_changes_hidden_from_other_clients(self, as_user, make_user, order):
        stranger = make_user("client", "stranger")
        response = as_user(stranger).get(_detail(order, "changes/"), {"since": 1})
        assert response.status_code == 404
