import threading
from datetime import datetime, timezone

import pytest

from logbook.errors import InvalidInput, InvalidTransition, MissingRemarks, Unauthorized, NotFound
from logbook.models import User, ChemicalPreparation, AirValidation, Report
from logbook.repository import InMemoryRecordRepository
from logbook.workflow import ApprovalWorkflow, plan_approve

FIXED_NOW = datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)

OPERATOR = User(id=1, name="James Wilson", role="operator", site_id="site-001")
OTHER_OPERATOR = User(id=5, name="Priya Nair", role="operator", site_id="site-001")
SUPERVISOR = User(id=2, name="Sarah Chen", role="supervisor", site_id="site-001")
CUSTOMER = User(id=3, name="Michael Foster", role="customer", site_id="site-001")
ADMIN = User(id=4, name="Emily Rodriguez", role="super_admin", site_id=None)
FOREIGN_SUPERVISOR = User(id=6, name="Tom Berg", role="supervisor", site_id="site-002")

PREP = dict(
    chemical_name="Sodium Hydroxide (NaOH)",
    equipment_id="RE0001",
    concentration=5,
    water_volume=100,
    remarks="For CIP cycle",
)


@pytest.fixture
def preps():
    return ApprovalWorkflow(InMemoryRecordRepository(ChemicalPreparation), clock=lambda: FIXED_NOW)


@pytest.fixture
def pending(preps):
    record = preps.create(OPERATOR, **PREP)
    return preps.submit(record.id, OPERATOR)


class TestCreateAndRevise:

    def test_create_derives_quantity(self, preps):
        record = preps.create(OPERATOR, **PREP)
        assert record.status == "draft"
        assert record.chemical_quantity == 5.1
        assert record.operator_id == OPERATOR.id
        assert record.site_id == "site-001"

    def test_create_rejects_bad_inputs_without_storing(self, preps):
        with pytest.raises(InvalidInput):
            preps.create(OPERATOR, **dict(PREP, water_volume=0))
        assert preps.repository.list() == []

    def test_customer_cannot_log(self, preps):
        with pytest.raises(Unauthorized):
            preps.create(CUSTOMER, **PREP)

    def test_revise_recomputes(self, preps):
        record = preps.create(OPERATOR, **PREP)
        record = preps.revise(record.id, OPERATOR, water_volume=200)
        assert record.water_volume == 200
        assert record.chemical_quantity == 10.2

    def test_bad_revision_leaves_record_untouched(self, preps):
        record = preps.create(OPERATOR, **PREP)
        with pytest.raises(InvalidInput):
            preps.revise(record.id, OPERATOR, concentration=150)
        assert record.concentration == 5
        assert record.chemical_quantity == 5.1

    def test_derived_fields_cannot_be_edited(self, preps):
        record = preps.create(OPERATOR, **PREP)
        with pytest.raises(InvalidInput):
            preps.revise(record.id, OPERATOR, chemical_quantity=1.0)

    def test_room_name_is_required(self):
        rooms = ApprovalWorkflow(InMemoryRecordRepository(AirValidation))
        record = rooms.create(OPERATOR, room_name="Gowning Room", iso_class=8, room_volume=240,
                              grid_readings=[100, 100], diffuser_area=4.0, diffuser_count=1)
        for blank in (None, "", "  "):
            with pytest.raises(InvalidInput) as exc:
                rooms.revise(record.id, OPERATOR, room_name=blank)
            assert exc.value.field == "room_name"
        assert record.room_name == "Gowning Room"

    def test_revise_only_while_draft(self, preps, pending):
        with pytest.raises(InvalidTransition):
            preps.revise(pending.id, OPERATOR, water_volume=200)


class TestSubmit:

    def test_draft_to_pending(self, preps):
        record = preps.create(OPERATOR, **PREP)
        record = preps.submit(record.id, OPERATOR)
        assert record.status == "pending"

    def test_only_owner_submits(self, preps):
        record = preps.create(OPERATOR, **PREP)
        with pytest.raises(Unauthorized):
            preps.submit(record.id, OTHER_OPERATOR)
        with pytest.raises(Unauthorized):
            preps.submit(record.id, SUPERVISOR)

    def test_only_from_draft(self, preps, pending):
        with pytest.raises(InvalidTransition):
            preps.submit(pending.id, OPERATOR)

    def test_submit_recomputes_and_refuses_broken_inputs(self, preps):
        record = preps.create(OPERATOR, **PREP)
        record.water_volume = -1   # corrupted behind the workflow's back
        with pytest.raises(InvalidInput):
            preps.submit(record.id, OPERATOR)
        assert record.status == "draft"

    def test_air_validation_submit_keeps_verdict(self):
        flow = ApprovalWorkflow(InMemoryRecordRepository(AirValidation))
        record = flow.create(
            OPERATOR, room_name="Fill Room 2", iso_class=7, room_volume=1800,
            grid_readings=[92, 88, 95, 90], diffuser_area=4.0, diffuser_count=6,
        )
        record = flow.submit(record.id, OPERATOR)
        assert record.status == "pending"
        assert record.result == "pass"
        assert record.ach == pytest.approx(73.0)


class TestReview:

    def test_supervisor_approves(self, preps, pending):
        record = preps.approve(pending.id, SUPERVISOR)
        assert record.status == "approved"
        assert record.approved_by == SUPERVISOR.id
        assert record.approved_by_name == "Sarah Chen"
        assert record.approved_at == FIXED_NOW
        assert record.review_remarks is None

    def test_super_admin_approves_with_remarks(self, preps, pending):
        record = preps.approve(pending.id, ADMIN, remarks="  checked  ")
        assert record.status == "approved"
        assert record.review_remarks == "checked"

    def test_operator_cannot_approve(self, preps, pending):
        with pytest.raises(Unauthorized):
            preps.approve(pending.id, OPERATOR)
        assert pending.status == "pending"

    def test_operator_cannot_reject(self, preps, pending):
        with pytest.raises(Unauthorized):
            preps.reject(pending.id, OPERATOR, "no")

    def test_customer_cannot_review_a_pending_record(self, preps, pending):
        # the customer cannot see the pending record, the role still decides
        with pytest.raises(Unauthorized):
            preps.approve(pending.id, CUSTOMER)
        with pytest.raises(Unauthorized):
            preps.reject(pending.id, CUSTOMER, "looks wrong")
        assert preps.repository.get(pending.id).status == "pending"

    def test_reject_needs_remarks(self, preps, pending):
        for remarks in (None, "", "   "):
            with pytest.raises(MissingRemarks):
                preps.reject(pending.id, SUPERVISOR, remarks)
        assert pending.status == "pending"

    def test_reject_with_remarks_is_terminal(self, preps, pending):
        record = preps.reject(pending.id, SUPERVISOR, "Wrong equipment ID")
        assert record.status == "rejected"
        assert record.review_remarks == "Wrong equipment ID"

        with pytest.raises(InvalidTransition):
            preps.approve(record.id, SUPERVISOR)
        with pytest.raises(InvalidTransition):
            preps.reject(record.id, SUPERVISOR, "again")
        with pytest.raises(InvalidTransition):
            preps.submit(record.id, OPERATOR)

    def test_approved_is_terminal(self, preps, pending):
        preps.approve(pending.id, SUPERVISOR)
        with pytest.raises(InvalidTransition):
            preps.approve(pending.id, ADMIN)
        with pytest.raises(InvalidTransition):
            preps.reject(pending.id, SUPERVISOR, "too late")
        with pytest.raises(InvalidTransition):
            preps.revise(pending.id, OPERATOR, water_volume=10)

    def test_cannot_review_a_draft(self, preps):
        record = preps.create(OPERATOR, **PREP)
        with pytest.raises(InvalidTransition):
            preps.approve(record.id, SUPERVISOR)

    def test_supervisor_of_another_site_cannot_see_it(self, preps, pending):
        with pytest.raises(NotFound):
            preps.approve(pending.id, FOREIGN_SUPERVISOR)

    def test_stale_plan_loses(self, preps, pending):
        # planned while pending, applied after someone else approved
        transition = plan_approve(pending, ADMIN)
        preps.approve(pending.id, SUPERVISOR)
        with pytest.raises(InvalidTransition):
            preps.repository.compare_and_set(pending.id, transition.expected, transition.changes)
        assert pending.approved_by == SUPERVISOR.id


def test_concurrent_approvals_have_one_winner():
    for _ in range(20):
        flow = ApprovalWorkflow(InMemoryRecordRepository(Report))
        record = flow.create(OPERATOR, report_type="utility", title="Daily Chiller Log - Line A")
        flow.submit(record.id, OPERATOR)

        barrier = threading.Barrier(2)
        outcomes = []

        def review(actor):
            barrier.wait()
            try:
                flow.approve(record.id, actor)
                outcomes.append(("ok", actor.id))
            except InvalidTransition:
                outcomes.append(("lost", actor.id))

        threads = [threading.Thread(target=review, args=(a,)) for a in (SUPERVISOR, ADMIN)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(o[0] for o in outcomes) == ["lost", "ok"]
        winner = next(actor_id for result, actor_id in outcomes if result == "ok")
        assert flow.repository.get(record.id).approved_by == winner


def test_customer_sees_only_approved():
    flow = ApprovalWorkflow(InMemoryRecordRepository(Report))
    titles = ["Draft", "Pending", "Approved", "Rejected"]
    records = [flow.create(OPERATOR, report_type="chemical", title=t) for t in titles]
    for r in records[1:]:
        flow.submit(r.id, OPERATOR)
    flow.approve(records[2].id, SUPERVISOR)
    flow.reject(records[3].id, SUPERVISOR, "Missing signature")

    seen = flow.visible(CUSTOMER)
    assert [r.title for r in seen] == ["Approved"]
    assert all(r.status == "approved" for r in seen)

    assert len(flow.visible(SUPERVISOR)) == 4
    assert len(flow.visible(ADMIN)) == 4
    assert flow.visible(FOREIGN_SUPERVISOR) == []

    with pytest.raises(NotFound):
        flow.get(CUSTOMER, records[1].id)
