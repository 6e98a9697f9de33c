"""Registration workflow states, events and the transition function.

Flow::

    Intake -> AwaitingPayment -> Gated -> ReadyToCommit -> Committing -> Committed

``Abandoned`` is reachable from every state before ``Committed``. The only
constructor call for ``Committing`` is in the ``ReadyToCommit`` branch of
``transition``, and that branch re-checks both halves of the payment gate
(acknowledged, dwell elapsed) against the draft itself.
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Union

from party_registration.models.draft import RegistrationDraft
from party_registration.services.errors import (
    GateClosedError,
    InvalidTransitionError,
    ValidationError,
)

INTAKE_ERROR_MESSAGE = "Please correct the highlighted fields"


# --------------------------------------------------------------------------- #
# States
# --------------------------------------------------------------------------- #


@dataclass(frozen=True)
class Intake:
    # Restored from session storage when resuming an earlier visit
    draft: Optional[RegistrationDraft] = None


@dataclass(frozen=True)
class AwaitingPayment:
    draft: RegistrationDraft


@dataclass(frozen=True)
class Gated:
    draft: RegistrationDraft


@dataclass(frozen=True)
class ReadyToCommit:
    draft: RegistrationDraft
    error: Optional[str] = None
    field_errors: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Committing:
    draft: RegistrationDraft


@dataclass(frozen=True)
class Committed:
    registration: dict[str, Any]


@dataclass(frozen=True)
class Abandoned:
    draft: Optional[RegistrationDraft] = None


WorkflowState = Union[
    Intake, AwaitingPayment, Gated, ReadyToCommit, Committing, Committed, Abandoned
]


# --------------------------------------------------------------------------- #
# Events
# --------------------------------------------------------------------------- #


@dataclass(frozen=True)
class SubmitIntake:
    draft: RegistrationDraft


@dataclass(frozen=True)
class PaymentLinkOpened:
    at: float
    dwell_seconds: float


@dataclass(frozen=True)
class DwellElapsed:
    at: float


@dataclass(frozen=True)
class ConfirmCommit:
    at: float


@dataclass(frozen=True)
class CommitSucceeded:
    registration: dict[str, Any]


@dataclass(frozen=True)
class CommitFailed:
    message: str
    field_errors: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Abandon:
    pass


WorkflowEvent = Union[
    SubmitIntake,
    PaymentLinkOpened,
    DwellElapsed,
    ConfirmCommit,
    CommitSucceeded,
    CommitFailed,
    Abandon,
]


# --------------------------------------------------------------------------- #
# Transitions
# --------------------------------------------------------------------------- #


def gate_is_open(draft: RegistrationDraft, at: float) -> bool:
    """Both gates: the payment link was opened and the dwell time has passed"""
    return (
        draft.payment_acknowledged
        and draft.gate_opens_at is not None
        and at >= draft.gate_opens_at
    )


def _reject(state: WorkflowState, event: WorkflowEvent, reason: Optional[str] = None):
    raise InvalidTransitionError(
        type(state).__name__, type(event).__name__, reason
    )


def _closed_gate(state: WorkflowState, event: ConfirmCommit) -> GateClosedError:
    draft = state.draft
    if not draft.payment_acknowledged:
        reason = "open the payment link before completing registration"
    else:
        remaining = max((draft.gate_opens_at or 0) - event.at, 0)
        reason = f"wait {remaining:.1f}s after opening the payment link"
    return GateClosedError(type(state).__name__, type(event).__name__, reason)


def transition(state: WorkflowState, event: WorkflowEvent) -> WorkflowState:
    """
    Compute the next workflow state. Pure: no I/O, no clock reads.

    Raises:
        ValidationError: Intake submitted with invalid fields
        GateClosedError: Commit requested before the payment gate opened
        InvalidTransitionError: Event not allowed in ``state``
    """
    if isinstance(event, Abandon):
        if isinstance(state, (Committed, Abandoned)):
            _reject(state, event, "workflow already finished")
        return Abandoned(draft=getattr(state, "draft", None))

    if isinstance(state, Intake):
        if isinstance(event, SubmitIntake):
            errors = event.draft.validation_errors()
            if errors:
                raise ValidationError(INTAKE_ERROR_MESSAGE, errors)
            # A fresh payment step always starts with both gates closed
            draft = event.draft.model_copy(
                update={"payment_acknowledged": False, "gate_opens_at": None}
            )
            return AwaitingPayment(draft=draft)
        _reject(state, event)

    if isinstance(state, (AwaitingPayment, Gated, ReadyToCommit)) and isinstance(
        event, PaymentLinkOpened
    ):
        # Re-opening the link restarts the dwell period
        draft = state.draft.model_copy(
            update={
                "payment_acknowledged": True,
                "gate_opens_at": event.at + event.dwell_seconds,
            }
        )
        return Gated(draft=draft)

    if isinstance(state, AwaitingPayment):
        if isinstance(event, ConfirmCommit):
            raise _closed_gate(state, event)
        _reject(state, event)

    if isinstance(state, Gated):
        if isinstance(event, DwellElapsed):
            if gate_is_open(state.draft, event.at):
                return ReadyToCommit(draft=state.draft)
            return state
        if isinstance(event, ConfirmCommit):
            if not gate_is_open(state.draft, event.at):
                raise _closed_gate(state, event)
            # The timer callback has not run yet; pass through ReadyToCommit
            return transition(ReadyToCommit(draft=state.draft), event)
        _reject(state, event)

    if isinstance(state, ReadyToCommit):
        if isinstance(event, ConfirmCommit):
            if not gate_is_open(state.draft, event.at):
                raise _closed_gate(state, event)
            return Committing(draft=state.draft)
        if isinstance(event, DwellElapsed):
            return state
        _reject(state, event)

    if isinstance(state, Committing):
        if isinstance(event, CommitSucceeded):
            return Committed(registration=event.registration)
        if isinstance(event, CommitFailed):
            return ReadyToCommit(
                draft=state.draft,
                error=event.message,
                field_errors=dict(event.field_errors),
            )
        _reject(state, event, "registration is being submitted")

    _reject(state, event)
