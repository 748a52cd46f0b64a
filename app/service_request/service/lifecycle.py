# app/service_request/service/lifecycle.py
"""
Service-request status transitions.

``TRANSITIONS`` is the full table of legal moves: anything not listed is
rejected, including moves out of terminal states and no-op moves to the
current status. There are no timers; a request left ``pending`` stays
``pending`` until someone acts on it.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

from app.service_request.entity.service_request import (
    ActorRole,
    InvalidTransitionError,
    RequestStatus,
    Resolution,
    ResponseRequiredError,
)


@dataclass(frozen=True)
class TransitionRule:
    resolution: Optional[Resolution] = None
    requires_response: bool = False
    guest_accepted: Optional[bool] = None


_ACTIVE = (RequestStatus.PENDING, RequestStatus.IN_PROGRESS)

_rules: Dict[Tuple[ActorRole, RequestStatus, RequestStatus], TransitionRule] = {
    (ActorRole.STAFF, RequestStatus.PENDING, RequestStatus.IN_PROGRESS): TransitionRule(),
    (ActorRole.GUEST, RequestStatus.PENDING, RequestStatus.CANCELLED):
        TransitionRule(resolution=Resolution.CANCELLED_BY_GUEST),
    (ActorRole.GUEST, RequestStatus.MODIFIED, RequestStatus.IN_PROGRESS):
        TransitionRule(resolution=Resolution.ACCEPTED_MODIFIED, guest_accepted=True),
    (ActorRole.GUEST, RequestStatus.MODIFIED, RequestStatus.REJECTED):
        TransitionRule(resolution=Resolution.REJECTED_MODIFIED, guest_accepted=False),
}
for _source in _ACTIVE:
    _rules[(ActorRole.STAFF, _source, RequestStatus.COMPLETED)] = TransitionRule(resolution=Resolution.FULFILLED)
    _rules[(ActorRole.STAFF, _source, RequestStatus.DECLINED)] = TransitionRule(
        resolution=Resolution.DECLINED_BY_STAFF, requires_response=True
    )
    _rules[(ActorRole.STAFF, _source, RequestStatus.MODIFIED)] = TransitionRule(requires_response=True)

TRANSITIONS: Mapping[Tuple[ActorRole, RequestStatus, RequestStatus], TransitionRule] = dict(_rules)


def allowed_targets(actor: ActorRole, current: RequestStatus) -> FrozenSet[RequestStatus]:
    return frozenset(target for (who, source, target) in TRANSITIONS if who == actor and source == current)


def resolve_transition(
    actor: ActorRole,
    current: RequestStatus,
    target: RequestStatus,
    response_text: Optional[str] = None,
) -> TransitionRule:
    """Return the rule for this move or raise InvalidTransitionError / ResponseRequiredError."""
    rule = TRANSITIONS.get((actor, current, target))
    if rule is None:
        raise InvalidTransitionError(current, target, actor)
    if rule.requires_response and not (response_text and response_text.strip()):
        raise ResponseRequiredError(current, target, actor)
    return rule


def transition_changes(
    rule: TransitionRule,
    actor: ActorRole,
    target: RequestStatus,
    response_text: Optional[str],
    now: datetime,
) -> Dict[str, Any]:
    """Column values written together with the new status."""
    changes: Dict[str, Any] = {"status": target, "updated_at": now}
    if rule.resolution is not None:
        changes["resolution"] = rule.resolution
    if rule.guest_accepted is not None:
        changes["guest_accepted"] = rule.guest_accepted
    if target == RequestStatus.COMPLETED:
        changes["completed_at"] = now
    text = response_text.strip() if response_text else ""
    if actor == ActorRole.STAFF and text:
        changes["staff_response"] = text
        changes["responded_at"] = now
    return changes
