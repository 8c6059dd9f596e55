"""Unit tests for OrderStateMachine.

Covers:
- A new order: Submitted, every stage Not Started, 25% progress.
- Allowed and rejected transitions from the canonical table.
- Terminal states reject everything.
- Role checks, including the owning client's cancellation right.
- Preconditions: design attachment, prepress checklist, delivery gate.
- On Hold remembers and restores the previous status.
- Audit entries and domain events for every accepted move.
"""

from __future__ import annotations

import pytest

from modules.core.exceptions import Unauthorized
from modules.orders.constants import (
    VALID_TRANSITIONS,
    AttachmentKind,
    DeliveryMode,
    OrderStatus,
    StageName,
    StageStatus,
)
from modules.orders.events import OrderCancelled, OrderCreated, OrderStatusChanged
from modules.orders.exceptions import InvalidTransition, PreconditionNotMet
from modules.orders.stages import PREPRESS_SUB_PROCESSES

pytestmark = pytest.mark.unit

ARTWORK = "https://files.test/artwork.pdf"


def _finish_prepress(machine, order, actor):
    for name in PREPRESS_SUB_PROCESSES:
        machine.complete_sub_process(order, "prepress", name, actor)


# ---------------------------------------------------------------------------
# Opening an order
# ---------------------------------------------------------------------------


class TestOpen:
    def test_new_order_shape(self, new_order):
        assert new_order.status == OrderStatus.SUBMITTED
        assert new_order.progress == 25
        for name in ("submission", "design", "prepress", "delivery"):
            assert new_order.get_stage(name).status == StageStatus.NOT_STARTED

    def test_prepress_checklist_initialised(self, new_order):
        stage = new_order.get_stage(StageName.PREPRESS)
        assert set(stage.sub_processes) == set(PREPRESS_SUB_PROCESSES)
        assert not any(sub.is_completed for sub in stage.sub_processes.values())

    def test_creation_is_audited(self, new_order, client_actor):
        entry = new_order.pending_audit_entries[0]
        assert entry.action == "Order Created"
        assert entry.actor_id == client_actor.id
        assert isinstance(new_order.domain_events[0], OrderCreated)


# ---------------------------------------------------------------------------
# Table
# ---------------------------------------------------------------------------


class TestTransitionTable:
    def test_designing_from_submitted(self, machine, new_order, designer):
        machine.transition(new_order, OrderStatus.DESIGNING, designer)

        assert new_order.status == OrderStatus.DESIGNING
        assert new_order.get_stage("design").status == StageStatus.IN_PROGRESS

    def test_completed_directly_from_submitted(self, machine, new_order, manager):
        with pytest.raises(InvalidTransition):
            machine.transition(new_order, OrderStatus.COMPLETED, manager)
        assert new_order.status == OrderStatus.SUBMITTED

    def test_designing_cannot_skip_to_prepress(self, machine, new_order, designer):
        machine.transition(new_order, OrderStatus.DESIGNING, designer)
        with pytest.raises(InvalidTransition):
            machine.transition(new_order, OrderStatus.IN_PREPRESS, designer)

    def test_unknown_status(self, machine, new_order, manager):
        with pytest.raises(InvalidTransition, match="Unknown status"):
            machine.transition(new_order, "Printing", manager)

    @pytest.mark.parametrize("terminal", [OrderStatus.COMPLETED, OrderStatus.CANCELLED])
    def test_terminal_states_are_final(self, machine, new_order, manager, terminal):
        new_order.status = terminal
        for target in OrderStatus.values:
            with pytest.raises(InvalidTransition):
                machine.transition(new_order, target, manager)

    def test_table_has_no_exit_from_terminal(self):
        assert VALID_TRANSITIONS[OrderStatus.COMPLETED] == set()
        assert VALID_TRANSITIONS[OrderStatus.CANCELLED] == set()

    def test_table_check_precedes_role_check(self, machine, new_order, client_actor):
        with pytest.raises(InvalidTransition):
            machine.transition(new_order, OrderStatus.READY_FOR_DELIVERY, client_actor)


# ---------------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------------


class TestRoles:
    def test_client_cannot_start_design(self, machine, new_order, client_actor):
        with pytest.raises(Unauthorized):
            machine.transition(new_order, OrderStatus.DESIGNING, client_actor)

    def test_prepress_tech_cannot_start_design(self, machine, new_order, prepress):
        with pytest.raises(Unauthorized):
            machine.transition(new_order, OrderStatus.DESIGNING, prepress)

    def test_owning_client_cancels_submitted_order(self, machine, new_order, client_actor):
        machine.transition(new_order, OrderStatus.CANCELLED, client_actor, "No longer needed")

        assert new_order.status == OrderStatus.CANCELLED
        assert isinstance(new_order.domain_events[-1], OrderCancelled)
        assert new_order.pending_audit_entries[-1].details == (
            "Submitted to Cancelled: No longer needed"
        )

    def test_client_cannot_cancel_once_design_started(
        self, machine, new_order, designer, client_actor
    ):
        machine.transition(new_order, OrderStatus.DESIGNING, designer)
        with pytest.raises(Unauthorized):
            machine.transition(new_order, OrderStatus.CANCELLED, client_actor)

    def test_other_client_cannot_cancel(self, machine, new_order, make_user):
        from modules.core.actors import Actor

        stranger = Actor.from_user(make_user("client", "stranger"))
        with pytest.raises(Unauthorized):
            machine.transition(new_order, OrderStatus.CANCELLED, stranger)

    def test_designer_cannot_hold(self, machine, new_order, designer):
        with pytest.raises(Unauthorized):
            machine.transition(new_order, OrderStatus.ON_HOLD, designer)

    def test_available_transitions_per_role(self, machine, new_order, designer, manager):
        assert machine.available_transitions(new_order, designer) == [
            OrderStatus.DESIGNING
        ]
        assert set(machine.available_transitions(new_order, manager)) == {
            OrderStatus.DESIGNING,
            OrderStatus.CANCELLED,
            OrderStatus.ON_HOLD,
        }


# ---------------------------------------------------------------------------
# Preconditions
# ---------------------------------------------------------------------------


class TestPreconditions:
    def test_design_done_needs_attachment(self, machine, new_order, designer):
        machine.transition(new_order, OrderStatus.DESIGNING, designer)
        with pytest.raises(PreconditionNotMet, match="no design file or link"):
            machine.transition(new_order, OrderStatus.DESIGN_DONE, designer)

    def test_design_done_after_attachment(self, machine, new_order, designer):
        machine.transition(new_order, OrderStatus.DESIGNING, designer)
        machine.record_attachment(new_order, "design", AttachmentKind.LINK, ARTWORK, designer)
        machine.transition(new_order, OrderStatus.DESIGN_DONE, designer)

        design = new_order.get_stage("design")
        assert design.status == StageStatus.COMPLETED
        assert design.completed_by == designer.id
        assert new_order.progress == 50

    def test_ready_for_delivery_lists_missing_steps(
        self, machine, prepress_order, designer, prepress
    ):
        machine.complete_sub_process(prepress_order, "prepress", "positioning", prepress)
        with pytest.raises(PreconditionNotMet) as exc_info:
            machine.transition(prepress_order, OrderStatus.READY_FOR_DELIVERY, designer)
        assert "laserImaging" in exc_info.value.reason
        assert "positioning" not in exc_info.value.reason

    def test_ready_for_delivery_after_checklist(
        self, machine, prepress_order, prepress, designer
    ):
        _finish_prepress(machine, prepress_order, prepress)
        assert prepress_order.progress == 75
        machine.choose_delivery_mode(prepress_order, DeliveryMode.DIRECT, designer)

        machine.transition(prepress_order, OrderStatus.READY_FOR_DELIVERY, prepress)

        assert prepress_order.status == OrderStatus.READY_FOR_DELIVERY
        assert prepress_order.get_stage("delivery").status == StageStatus.IN_PROGRESS

    def test_failed_precondition_changes_nothing(self, machine, prepress_order, designer):
        entries = len(prepress_order.pending_audit_entries)
        with pytest.raises(PreconditionNotMet):
            machine.transition(prepress_order, OrderStatus.READY_FOR_DELIVERY, designer)
        assert prepress_order.status == OrderStatus.IN_PREPRESS
        assert len(prepress_order.pending_audit_entries) == entries

    def test_shipping_completion_waits_for_courier(
        self, machine, prepress_order, prepress, designer, courier
    ):
        _finish_prepress(machine, prepress_order, prepress)
        machine.choose_delivery_mode(
            prepress_order,
            DeliveryMode.SHIPPING_COMPANY,
            designer,
            shipment_company="Middle East",
        )
        machine.transition(prepress_order, OrderStatus.READY_FOR_DELIVERY, designer)

        with pytest.raises(PreconditionNotMet, match="no courier"):
            machine.transition(prepress_order, OrderStatus.COMPLETED, courier)

        machine.assign_courier(prepress_order, courier.id, courier)
        machine.transition(prepress_order, OrderStatus.COMPLETED, courier)

        assert prepress_order.status == OrderStatus.COMPLETED
        assert prepress_order.progress == 100
        assert prepress_order.get_stage("delivery").is_completed

    def test_ready_for_delivery_requires_delivery_mode(
        self, machine, prepress_order, prepress, designer
    ):
        _finish_prepress(machine, prepress_order, prepress)
        with pytest.raises(PreconditionNotMet, match="no delivery mode"):
            machine.transition(prepress_order, OrderStatus.READY_FOR_DELIVERY, prepress)
        assert prepress_order.status == OrderStatus.IN_PREPRESS

        machine.choose_delivery_mode(prepress_order, DeliveryMode.DIRECT, designer)
        machine.transition(prepress_order, OrderStatus.READY_FOR_DELIVERY, prepress)
        assert prepress_order.status == OrderStatus.READY_FOR_DELIVERY

    def test_completion_without_mode(self, machine, prepress_order, prepress, manager):
        _finish_prepress(machine, prepress_order, prepress)
        prepress_order.status = OrderStatus.READY_FOR_DELIVERY
        with pytest.raises(PreconditionNotMet, match="no delivery mode"):
            machine.transition(prepress_order, OrderStatus.COMPLETED, manager)

    def test_in_prepress_can_be_reentered(self, machine, prepress_order, prepress, designer):
        machine.complete_sub_process(prepress_order, "prepress", "positioning", prepress)
        before = prepress_order.get_stage("prepress")

        machine.transition(prepress_order, OrderStatus.IN_PREPRESS, designer, "Plates remade")

        assert prepress_order.status == OrderStatus.IN_PREPRESS
        assert prepress_order.get_stage("prepress") == before
        assert prepress_order.pending_audit_entries[-1].details == (
            "In Prepress to In Prepress: Plates remade"
        )

    def test_in_prepress_reentry_keeps_completed_checklist(
        self, machine, prepress_order, prepress, designer
    ):
        _finish_prepress(machine, prepress_order, prepress)
        machine.transition(prepress_order, OrderStatus.IN_PREPRESS, designer)

        assert prepress_order.get_stage("prepress").is_completed
        assert prepress_order.progress == 75

    def test_in_prepress_reentry_needs_design_role(self, machine, prepress_order, prepress):
        with pytest.raises(Unauthorized):
            machine.transition(prepress_order, OrderStatus.IN_PREPRESS, prepress)


# ---------------------------------------------------------------------------
# On Hold
# ---------------------------------------------------------------------------


class TestOnHold:
    def test_hold_and_resume(self, machine, new_order, designer, manager):
        machine.transition(new_order, OrderStatus.DESIGNING, designer)
        machine.transition(new_order, OrderStatus.ON_HOLD, manager, "Waiting on client")

        assert new_order.status == OrderStatus.ON_HOLD
        assert new_order.status_before_hold == OrderStatus.DESIGNING
        assert machine.allowed_targets(new_order) == {
            OrderStatus.DESIGNING,
            OrderStatus.CANCELLED,
        }

        machine.transition(new_order, OrderStatus.DESIGNING, manager)

        assert new_order.status == OrderStatus.DESIGNING
        assert new_order.status_before_hold == ""

    def test_resume_elsewhere_is_invalid(self, machine, new_order, manager):
        machine.transition(new_order, OrderStatus.ON_HOLD, manager)
        with pytest.raises(InvalidTransition):
            machine.transition(new_order, OrderStatus.DESIGNING, manager)

    def test_only_supervisors_resume(self, machine, new_order, designer, manager):
        machine.transition(new_order, OrderStatus.ON_HOLD, manager)
        with pytest.raises(Unauthorized):
            machine.transition(new_order, OrderStatus.SUBMITTED, designer)

    def test_resume_does_not_restart_stage(self, machine, new_order, designer, manager):
        machine.transition(new_order, OrderStatus.DESIGNING, designer)
        started = new_order.get_stage("design").start_date
        machine.transition(new_order, OrderStatus.ON_HOLD, manager)
        machine.transition(new_order, OrderStatus.DESIGNING, manager)
        assert new_order.get_stage("design").start_date == started

    def test_cancel_while_held(self, machine, new_order, manager):
        machine.transition(new_order, OrderStatus.ON_HOLD, manager)
        machine.transition(new_order, OrderStatus.CANCELLED, manager)
        assert new_order.status == OrderStatus.CANCELLED
        assert new_order.progress == 25


# ---------------------------------------------------------------------------
# Audit and events
# ---------------------------------------------------------------------------


class TestAuditAndEvents:
    def test_status_change_entry(self, machine, new_order, designer):
        machine.transition(new_order, OrderStatus.DESIGNING, designer, "Starting now")

        entry = new_order.pending_audit_entries[-1]
        assert entry.action == "Status Changed"
        assert entry.actor_id == designer.id
        assert entry.actor_role == "employee"
        assert entry.details == "Submitted to Designing: Starting now"

        event = new_order.domain_events[-1]
        assert isinstance(event, OrderStatusChanged)
        assert (event.old_status, event.new_status) == ("Submitted", "Designing")


# ---------------------------------------------------------------------------
# Attachments and comments
# ---------------------------------------------------------------------------


class TestAttachments:
    def test_link_goes_to_design_links(self, machine, new_order, designer):
        assert machine.record_attachment(
            new_order, "design", AttachmentKind.LINK, ARTWORK, designer
        )
        assert new_order.design_links[0]["reference"] == ARTWORK
        assert new_order.files == []
        assert new_order.pending_audit_entries[-1].action == "Design link Added"

    def test_file_goes_to_files(self, machine, new_order, client_actor):
        machine.record_attachment(
            new_order, "submission", AttachmentKind.FILE, "uploads/brief.pdf", client_actor
        )
        assert new_order.files[0]["kind"] == "file"
        assert new_order.files[0]["stage"] == "submission"
        assert new_order.pending_audit_entries[-1].action == "File Added"

    @pytest.mark.parametrize("role_fixture", ["client_actor", "courier", "prepress"])
    def test_design_attachments_need_design_role(
        self, request, machine, new_order, role_fixture
    ):
        actor = request.getfixturevalue(role_fixture)
        with pytest.raises(Unauthorized, match="design files or links"):
            machine.record_attachment(
                new_order, "design", AttachmentKind.FILE, "uploads/logo.svg", actor
            )
        assert not new_order.has_attachment("design")

    def test_client_file_does_not_satisfy_design_done(
        self, machine, new_order, designer, client_actor
    ):
        machine.transition(new_order, OrderStatus.DESIGNING, designer)
        machine.record_attachment(
            new_order, "submission", AttachmentKind.FILE, "uploads/logo.svg", client_actor
        )
        with pytest.raises(PreconditionNotMet, match="no design file or link"):
            machine.transition(new_order, OrderStatus.DESIGN_DONE, designer)

    def test_same_reference_on_another_stage_is_recorded(
        self, machine, new_order, designer
    ):
        machine.record_attachment(new_order, "design", AttachmentKind.FILE, "plates.tif", designer)
        assert machine.record_attachment(
            new_order, "prepress", AttachmentKind.FILE, "plates.tif", designer
        )
        assert [f["stage"] for f in new_order.files] == ["design", "prepress"]

    def test_same_reference_twice_is_noop(self, machine, new_order, designer):
        machine.record_attachment(new_order, "design", AttachmentKind.LINK, ARTWORK, designer)
        assert not machine.record_attachment(
            new_order, "design", AttachmentKind.LINK, ARTWORK, designer
        )
        assert len(new_order.design_links) == 1

    def test_blank_reference(self, machine, new_order, designer):
        with pytest.raises(PreconditionNotMet):
            machine.record_attachment(new_order, "design", AttachmentKind.LINK, "  ", designer)

    def test_unknown_kind(self, machine, new_order, designer):
        with pytest.raises(PreconditionNotMet, match="Unknown attachment kind"):
            machine.record_attachment(new_order, "design", "fax", ARTWORK, designer)

    def test_not_on_terminal_order(self, machine, new_order, designer):
        new_order.status = OrderStatus.CANCELLED
        with pytest.raises(PreconditionNotMet):
            machine.record_attachment(
                new_order, "design", AttachmentKind.LINK, ARTWORK, designer
            )

    def test_comment(self, machine, new_order, designer):
        comment = machine.add_comment(new_order, "  Proof sent  ", designer)
        assert comment["text"] == "Proof sent"
        assert new_order.comments == [comment]
        assert new_order.pending_audit_entries[-1].action == "Comment Added"

    def test_empty_comment(self, machine, new_order, designer):
        with pytest.raises(PreconditionNotMet):
            machine.add_comment(new_order, "", designer)
