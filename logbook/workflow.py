"""
Approval workflow for logbook records.

    draft --submit--> pending --approve--> approved
                              --reject---> rejected

Approved and rejected are terminal. Each operation first works out the
transition from the record it was given (role, state, remarks) without
touching anything, then hands it to the repository's compare_and_set so
only one of several racing requests can win.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from logbook import access
from logbook.errors import InvalidInput, InvalidTransition, MissingRemarks, Unauthorized
from logbook.models import DRAFT, PENDING, APPROVED, REJECTED

logger = logging.getLogger(__name__)

TERMINAL = (APPROVED, REJECTED)


def utcnow():
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Transition:
    expected: str
    target: str
    changes: dict = field(default_factory=dict)


def recompute(record, **overrides):
    """
    Derived columns for `record` with `overrides` applied to its inputs.

    Works on a scratch instance so the stored record is never touched
    when the inputs turn out to be invalid.
    """
    model = type(record)
    unknown = set(overrides) - set(model.INPUT_FIELDS)
    if unknown:
        raise InvalidInput(f"Cannot edit {', '.join(sorted(unknown))}")

    scratch = model()
    for name in model.INPUT_FIELDS:
        setattr(scratch, name, overrides.get(name, getattr(record, name)))
    scratch.recalculate()

    return {
        name: getattr(scratch, name)
        for name in model.INPUT_FIELDS + model.DERIVED_FIELDS
    }


def _require_state(record, expected, action):
    if record.status in TERMINAL:
        raise InvalidTransition(
            f"Record is already {record.status} and can no longer change"
        )
    if record.status != expected:
        raise InvalidTransition(
            f"Cannot {action} a record that is {record.status}"
        )


def _require_owner(record, actor, action):
    if record.operator_id != actor.id:
        raise Unauthorized(f"Only the operator who logged this record can {action} it")


def _require_approver(actor, action):
    if not access.can_approve(actor.role):
        raise Unauthorized(f"Role '{actor.role}' cannot {action} records")


def plan_submit(record, actor):
    _require_owner(record, actor, "submit")
    _require_state(record, DRAFT, "submit")
    changes = recompute(record)
    changes["status"] = PENDING
    return Transition(DRAFT, PENDING, changes)


def plan_approve(record, actor, remarks=None, now=None):
    _require_approver(actor, "approve")
    _require_state(record, PENDING, "approve")
    return Transition(PENDING, APPROVED, {
        "status": APPROVED,
        "approved_by": actor.id,
        "approved_by_name": actor.name,
        "approved_at": now or utcnow(),
        "review_remarks": (remarks or "").strip() or None,
    })


def plan_reject(record, actor, remarks, now=None):
    _require_approver(actor, "reject")
    _require_state(record, PENDING, "reject")
    if not remarks or not remarks.strip():
        raise MissingRemarks("Please provide remarks for rejection", field="remarks")
    return Transition(PENDING, REJECTED, {
        "status": REJECTED,
        "approved_by": actor.id,
        "approved_by_name": actor.name,
        "approved_at": now or utcnow(),
        "review_remarks": remarks.strip(),
    })


def plan_revise(record, actor, **inputs):
    _require_owner(record, actor, "edit")
    _require_state(record, DRAFT, "edit")
    return Transition(DRAFT, DRAFT, recompute(record, **inputs))


class ApprovalWorkflow:
    """Runs transitions for one record type against a repository."""

    def __init__(self, repository, clock=utcnow):
        self.repository = repository
        self.clock = clock

    @property
    def kind(self):
        return self.repository.model.KIND

    def create(self, actor, **inputs):
        if not access.can_create(actor.role):
            raise Unauthorized(f"Role '{actor.role}' cannot log records")

        model = self.repository.model
        record = model(
            status=DRAFT,
            created_at=self.clock(),
            operator_id=actor.id,
            operator_name=actor.name,
            site_id=actor.site_id,
        )
        for key, value in recompute(record, **inputs).items():
            setattr(record, key, value)

        record = self.repository.save(record)
        logger.info("%s #%s logged by %s", self.kind, record.id, actor.name)
        return record

    def get(self, actor, record_id):
        record = self.repository.get(record_id)
        if not access.can_view(actor, record):
            # same answer as a missing record, customers should not
            # learn which drafts exist
            raise self.repository.not_found(record_id)
        return record

    def visible(self, actor):
        return access.visible_records(actor, self.repository.list())

    def _apply(self, record, transition, actor):
        record = self.repository.compare_and_set(
            record.id, transition.expected, transition.changes
        )
        logger.info(
            "%s #%s %s -> %s by %s (%s)",
            self.kind, record.id, transition.expected, transition.target,
            actor.name, actor.role
        )
        return record

    def revise(self, record_id, actor, **inputs):
        record = self.get(actor, record_id)
        return self._apply(record, plan_revise(record, actor, **inputs), actor)

    def submit(self, record_id, actor):
        record = self.get(actor, record_id)
        return self._apply(record, plan_submit(record, actor), actor)

    def approve(self, record_id, actor, remarks=None):
        # role is checked before visibility
        _require_approver(actor, "approve")
        record = self.get(actor, record_id)
        return self._apply(record, plan_approve(record, actor, remarks, self.clock()), actor)

    def reject(self, record_id, actor, remarks):
        _require_approver(actor, "reject")
        record = self.get(actor, record_id)
        transition = plan_reject(record, actor, remarks, self.clock())
        return self._apply(record, transition, actor)
