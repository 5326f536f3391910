"""Shift swap requests: pending -> approved | rejected."""

from __future__ import annotations

import logging
from typing import AbstractSet, Optional

from shift_scheduler.errors import SwapAtomicityError, SwapError
from shift_scheduler.events import SWAP_APPROVED, SWAP_REJECTED, SWAP_REQUESTED, EventBus
from shift_scheduler.services.timeplan import TimeRange, interval_on, is_valid_range

logger = logging.getLogger(__name__)

ACTIONS = ("approve", "reject")
DEFAULT_APPROVERS = frozenset({"target"})


def _name(employee) -> Optional[str]:
    return employee.name if employee is not None else None


def request_swap(store, actor_id: int, assignment_id: int, target_employee_id: int, events: EventBus | None = None):
    """
    Ask another employee to take over a shift the actor holds.

    Args:
        store: ScheduleStore
        actor_id: Employee making the request; must hold the assignment
        assignment_id: Assignment to give away
        target_employee_id: Employee asked to take it
        events: Optional event bus

    Returns:
        The new pending SwapRequest

    Raises:
        SwapError: not_found, not_holder, invalid_target or duplicate_pending
    """
    assignment = store.get_assignment(assignment_id)
    if assignment is None:
        raise SwapError("not_found", f"Assignment {assignment_id} not found")
    if assignment.emp_id != actor_id:
        raise SwapError("not_holder", "Only the employee holding a shift can request a swap")

    requester = store.get_employee(actor_id)
    target = store.get_employee(target_employee_id)
    if target is None or target_employee_id == actor_id or not target.is_active:
        raise SwapError("invalid_target", f"Employee {target_employee_id} cannot take this shift")
    if requester is not None and target.organization_id != requester.organization_id:
        raise SwapError("invalid_target", "Swap target must belong to the same organization")

    if store.find_pending_swap(assignment_id) is not None:
        raise SwapError("duplicate_pending", "A pending swap request already exists for this shift")

    request = store.create_swap_request(assignment_id, actor_id, target_employee_id)
    logger.info("Swap request %s: assignment %s from %s to %s", request.id, assignment_id, actor_id, target_employee_id)

    if events is not None:
        events.emit(
            SWAP_REQUESTED,
            {
                "request_id": request.id,
                "assignment_id": assignment_id,
                "requesting_employee_id": actor_id,
                "requesting_employee_name": _name(requester),
                "target_employee_id": target_employee_id,
                "target_employee_name": _name(target),
            },
        )
    return request


def _is_authorized(actor, request, approvers: AbstractSet[str], org_id: Optional[int]) -> bool:
    if "target" in approvers and request.target_employee_id == getattr(actor, "employee_id", None):
        return True
    if "manager" in approvers and actor is not None and actor.is_manager:
        return org_id is None or actor.organization_id == org_id
    return False


def _shift_range(store, shift_id: int) -> Optional[TimeRange]:
    shift = store.get_shift(shift_id)
    if shift is None:
        return None
    time_range = TimeRange.parse(shift.start_time, shift.end_time, bool(shift.overnight))
    return time_range if is_valid_range(time_range) else None


def _check_target_conflict(store, assignment, target_employee_id: int) -> None:
    """Refuse the swap if the target already works an overlapping shift in the same schedule."""
    own_range = _shift_range(store, assignment.shift_id)
    if own_range is None:
        return
    own_start, own_end = interval_on(assignment.date, own_range)
    for other in store.get_employee_assignments(target_employee_id, assignment.schedule_id):
        other_range = _shift_range(store, other.shift_id)
        if other_range is None:
            continue
        other_start, other_end = interval_on(other.date, other_range)
        if own_start < other_end and other_start < own_end:
            raise SwapError(
                "target_conflict",
                f"Employee {target_employee_id} already works an overlapping shift on {other.date}",
            )


def respond_to_swap(
    store,
    request_id: int,
    actor_id: int,
    action: str,
    approvers: AbstractSet[str] = DEFAULT_APPROVERS,
    events: EventBus | None = None,
):
    """
    Approve or reject a pending swap request.

    Approval sets the status, moves the assignment to the target and logs a
    ``modified`` change in one transaction, then re-reads both rows to
    confirm they agree.

    Args:
        store: ScheduleStore
        request_id: Swap request id
        actor_id: Employee responding
        action: "approve" or "reject"
        approvers: Who may approve: "target", "manager" or both. Only the
            target may reject.
        events: Optional event bus

    Returns:
        The updated SwapRequest

    Raises:
        SwapError: If the request is missing, not pending, or the actor may not respond
        SwapAtomicityError: If the committed state does not match the approval
    """
    if action not in ACTIONS:
        raise SwapError("invalid_action", f"Unknown action '{action}', expected approve or reject")

    request = store.get_swap_request(request_id)
    if request is None:
        raise SwapError("not_found", f"Swap request {request_id} not found")
    if request.status != "pending":
        raise SwapError("not_pending", "Swap request is no longer pending")

    assignment = store.get_assignment(request.from_assignment_id)
    if assignment is None:
        raise SwapError("not_found", f"Assignment {request.from_assignment_id} not found")

    actor = store.get_employee(actor_id)
    requester = store.get_employee(request.requesting_employee_id)
    org_id = requester.organization_id if requester is not None else None
    if action == "reject":
        allowed = actor_id == request.target_employee_id
    else:
        allowed = _is_authorized(actor, request, approvers, org_id)
    if not allowed:
        raise SwapError("not_authorized", f"Employee {actor_id} may not respond to swap request {request_id}")

    target = store.get_employee(request.target_employee_id)
    payload = {
        "request_id": request.id,
        "assignment_id": assignment.id,
        "requesting_employee_id": request.requesting_employee_id,
        "requesting_employee_name": _name(requester),
        "target_employee_id": request.target_employee_id,
        "target_employee_name": _name(target),
        "responded_by": actor_id,
    }

    if action == "reject":
        request = store.reject_swap(request_id, actor_id)
        logger.info("Swap request %s rejected by %s", request_id, actor_id)
        if events is not None:
            events.emit(SWAP_REJECTED, payload)
        return request

    if assignment.emp_id != request.requesting_employee_id:
        raise SwapError("not_holder", "The requesting employee no longer holds this shift")
    _check_target_conflict(store, assignment, request.target_employee_id)

    store.apply_swap_approval(request_id, actor_id)

    # Read back what was committed
    store.expire_all()
    committed_request = store.get_swap_request(request_id)
    committed_assignment = store.get_assignment(assignment.id)
    if (
        committed_request is None
        or committed_assignment is None
        or committed_request.status != "approved"
        or committed_assignment.emp_id != request.target_employee_id
    ):
        logger.error("Swap request %s diverged after approval", request_id)
        raise SwapAtomicityError(
            f"Swap request {request_id} approval was not applied atomically: "
            f"status={getattr(committed_request, 'status', None)}, "
            f"holder={getattr(committed_assignment, 'emp_id', None)}"
        )

    logger.info(
        "Swap request %s approved by %s: assignment %s now held by %s",
        request_id, actor_id, assignment.id, request.target_employee_id,
    )
    if events is not None:
        events.emit(SWAP_APPROVED, payload)
    return committed_request
