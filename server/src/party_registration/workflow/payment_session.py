import asyncio
import logging
import time
from typing import Callable, Optional

import redis
from pydantic import ValidationError as PydanticValidationError

from party_registration.config import config
from party_registration.models.draft import RegistrationDraft
from party_registration.services.errors import (
    ApiUnavailableError,
    InvalidTransitionError,
    ValidationError,
)
from party_registration.workflow.api_client import RegistrationApiClient
from party_registration.workflow.session_store import SessionStore
from party_registration.workflow.states import (
    Abandon,
    CommitFailed,
    CommitSucceeded,
    Committing,
    ConfirmCommit,
    DwellElapsed,
    Gated,
    Intake,
    PaymentLinkOpened,
    SubmitIntake,
    WorkflowEvent,
    WorkflowState,
    transition,
)

logger = logging.getLogger(__name__)

# Session storage key for the in-progress draft
DRAFT_KEY = "registrationData"
UNEXPECTED_FAILURE_MESSAGE = "Registration failed, please try again"


class PaymentSession:
    """
    Drives one client session through intake, the payment gate and commit.

    State changes go through ``transition``; this class adds the side effects
    around it: saving the draft to the injected SessionStore, scheduling the
    dwell timer on the running event loop, and submitting to the API.

    The draft is removed from session storage only after a successful
    commit. Abandoning or tearing down the session leaves it in place so the
    next visit resumes with the fields filled in.
    """

    def __init__(
        self,
        session_store: SessionStore,
        api_client: RegistrationApiClient,
        dwell_seconds: Optional[float] = None,
        payment_link: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            session_store: Where the draft survives page reloads
            api_client: Client used to commit the registration
            dwell_seconds: Minimum wait between opening the payment link and commit
            payment_link: Off-platform payment URL handed to the user
            clock: Epoch-seconds clock used for the gate timestamps
        """
        self.session_store = session_store
        self.api_client = api_client
        self.dwell_seconds = (
            dwell_seconds
            if dwell_seconds is not None
            else config["payment_dwell_seconds"]
        )
        self.payment_link = payment_link or config["payment_link"]
        self.clock = clock
        self._state: WorkflowState = Intake()
        self._timer: Optional[asyncio.TimerHandle] = None
        self._closed = False

    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def timer_pending(self) -> bool:
        return self._timer is not None

    def _dispatch(self, event: WorkflowEvent) -> WorkflowState:
        if self._closed:
            raise InvalidTransitionError(
                type(self._state).__name__,
                type(event).__name__,
                "session was torn down",
            )
        self._state = transition(self._state, event)
        return self._state

    def _save_draft(self, draft: RegistrationDraft) -> None:
        self.session_store.set(DRAFT_KEY, draft.to_storage())

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def resume(self) -> WorkflowState:
        """Enter the flow at Intake, restoring a saved draft if there is one"""
        if self._closed:
            raise InvalidTransitionError(
                type(self._state).__name__, "Resume", "session was torn down"
            )
        self._cancel_timer()

        draft = None
        stored = self.session_store.get(DRAFT_KEY)
        if stored:
            try:
                draft = RegistrationDraft.model_validate(stored)
            except PydanticValidationError as e:
                logger.warning(f"Discarding unreadable saved draft: {e}")
                self.session_store.delete(DRAFT_KEY)

        self._state = Intake(draft=draft)
        return self._state

    def submit_intake(self, draft: RegistrationDraft) -> WorkflowState:
        """
        Validate the intake form and move to the payment step.

        Raises:
            ValidationError: With per-field messages when the draft is invalid
        """
        state = self._dispatch(SubmitIntake(draft))
        self._save_draft(state.draft)
        return state

    def open_payment_link(self) -> str:
        """
        Record that the user opened the payment link and start the dwell timer.

        Must be called from a running event loop. Calling again restarts the
        timer.

        Returns:
            The payment URL to open
        """
        loop = asyncio.get_running_loop()
        state = self._dispatch(
            PaymentLinkOpened(at=self.clock(), dwell_seconds=self.dwell_seconds)
        )
        self._save_draft(state.draft)

        self._cancel_timer()
        self._timer = loop.call_later(self.dwell_seconds, self._on_dwell_elapsed)
        return state.draft.payment_link or self.payment_link

    def _on_dwell_elapsed(self) -> None:
        self._timer = None
        if self._closed or not isinstance(self._state, Gated):
            return
        self._state = transition(self._state, DwellElapsed(at=self.clock()))
        if isinstance(self._state, Gated):
            # The loop's timer and ``clock`` can drift apart; wait out the rest
            remaining = max(self._state.draft.gate_opens_at - self.clock(), 0.0)
            self._timer = asyncio.get_running_loop().call_later(
                remaining, self._on_dwell_elapsed
            )

    def _clear_draft(self) -> None:
        try:
            self.session_store.delete(DRAFT_KEY)
        except redis.RedisError as e:
            logger.warning(f"Could not clear the saved draft after commit: {e}")

    async def confirm(self) -> WorkflowState:
        """
        Commit the draft to the API.

        On success the state is Committed and the saved draft is cleared. On
        a validation or server/network failure the state returns to
        ReadyToCommit carrying the error, and the draft is kept for retry.
        Any other error from the client also returns the state to
        ReadyToCommit before it propagates.

        Raises:
            GateClosedError: Payment link not opened or dwell time not over
            InvalidTransitionError: Not at the payment step (or already committing)
        """
        state = self._dispatch(ConfirmCommit(at=self.clock()))
        self._cancel_timer()

        try:
            registration = await self.api_client.register(
                state.draft.registration_payload()
            )
        except ValidationError as e:
            failure = CommitFailed(e.message, e.errors)
        except ApiUnavailableError as e:
            failure = CommitFailed(str(e))
        except (Exception, asyncio.CancelledError) as e:
            logger.error(f"Registration commit interrupted: {e!r}")
            self._commit_failed(CommitFailed(UNEXPECTED_FAILURE_MESSAGE))
            raise
        else:
            if isinstance(self._state, Committing):
                self._state = transition(self._state, CommitSucceeded(registration))
            logger.info(f"Registration {registration.get('id')} committed")
            self._clear_draft()
            return self._state

        logger.warning(f"Registration commit failed: {failure.message}")
        self._commit_failed(failure)
        return self._state

    def _commit_failed(self, failure: CommitFailed) -> None:
        if isinstance(self._state, Committing):
            self._state = transition(self._state, failure)

    def abandon(self) -> WorkflowState:
        """User navigated away before committing; the saved draft is kept"""
        self._cancel_timer()
        return self._dispatch(Abandon())

    def teardown(self) -> None:
        """Cancel pending work; no callback may touch this session afterwards"""
        self._cancel_timer()
        self._closed = True
