"""
Negotiation lifecycle controller.

WHAT: The only writer of agent turns, human replies and negotiation creation
WHY: Preconditions, single-flight, persistence, events and fan-out must happen together
HOW: Guarded step -> orchestrator (backend or demo) -> one transaction -> publish -> optional auto-continue
"""

import asyncio
from datetime import datetime
from typing import Callable, List, Optional, Set, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .config import settings
from .database import get_db
from .models import (
    BallOwner, BuyAgent, EventType, Listing, ListingStatus, Message, MessageRole,
    Negotiation, NegotiationState, SellAgent, TERMINAL_STATES,
)
from .step_guard import StepGuard, step_guard
from ..agents.history import is_price_stalemate
from ..agents.orchestrator import acting_role, generate_demo_response, run_orchestration_step
from ..agents.roles import BALL_FOR_ROLE
from ..llm.provider import LLMProvider
from ..llm.provider_factory import get_provider
from ..models.negotiation import (
    BuyAgentInfo, ListingInfo, MessageRecord, NegotiationSnapshot, NegotiationSummary,
    OrchestrationContext, OrchestrationResult, ParsedMessage, SellAgentInfo, StepOutcome,
)
from ..services.event_log import record_event
from ..services.realtime import RealtimeHub, processing_delta, realtime_hub, update_delta
from ..utils.exceptions import (
    APIException, AwaitingHumanInputError, InvalidStateError, NegotiationNotFoundError,
    ResourceNotFoundError, StepConflictError, ValidationError,
)
from ..utils.logger import get_logger
from ..utils.text import extract_dollar_amount

logger = get_logger(__name__)


def classify_step_event(result: OrchestrationResult) -> EventType:
    """deal_agreed > human_input_required > buyer_proposes / seller_counters."""
    if result.is_agreed:
        return EventType.DEAL_AGREED
    if result.parsed.user_prompt is not None:
        return EventType.HUMAN_INPUT_REQUIRED
    if result.role == MessageRole.BUYER_AGENT:
        return EventType.BUYER_PROPOSES
    return EventType.SELLER_COUNTERS


def _ordered_messages(db: Session, negotiation_id: str) -> List[Message]:
    return (
        db.query(Message)
        .filter(Message.negotiation_id == negotiation_id)
        .order_by(Message.created_at.asc(), Message.id.asc())
        .all()
    )


class NegotiationManager:
    """
    Manage negotiation creation, agent steps and human replies.

    WHAT: Wrap the pure orchestrator with persistence and concurrency control
    WHY: State lives in the store, so any process can resume by stepping again
    HOW: get_db() transactions, StepGuard single-flight, RealtimeHub deltas, tracked asyncio tasks
    """

    def __init__(
        self,
        guard: Optional[StepGuard] = None,
        hub: Optional[RealtimeHub] = None,
        provider_getter: Optional[Callable[[], LLMProvider]] = None,
    ):
        self.guard = guard or step_guard
        self.hub = hub or realtime_hub
        self._provider_getter = provider_getter or get_provider
        self._pending_tasks: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _get_row(self, db: Session, negotiation_id: str) -> Negotiation:
        negotiation = db.get(Negotiation, negotiation_id)
        if negotiation is None:
            raise NegotiationNotFoundError(negotiation_id)
        return negotiation

    def get_negotiation(self, negotiation_id: str) -> NegotiationSummary:
        with get_db() as db:
            return NegotiationSummary.model_validate(self._get_row(db, negotiation_id))

    def list_negotiations(
        self,
        *,
        listing_id: Optional[str] = None,
        buy_agent_id: Optional[str] = None,
        state: Optional[NegotiationState] = None,
    ) -> List[NegotiationSummary]:
        with get_db() as db:
            query = db.query(Negotiation)
            if listing_id:
                query = query.filter(Negotiation.listing_id == listing_id)
            if buy_agent_id:
                query = query.filter(Negotiation.buy_agent_id == buy_agent_id)
            if state:
                query = query.filter(Negotiation.state == state)
            rows = query.order_by(Negotiation.created_at.desc()).all()
            return [NegotiationSummary.model_validate(row) for row in rows]

    def list_messages(self, negotiation_id: str) -> List[MessageRecord]:
        with get_db() as db:
            self._get_row(db, negotiation_id)
            return [MessageRecord.from_row(row) for row in _ordered_messages(db, negotiation_id)]

    def _load_context(self, db: Session, negotiation: Negotiation) -> OrchestrationContext:
        listing = db.get(Listing, negotiation.listing_id)
        if listing is None:
            raise ResourceNotFoundError("listing", negotiation.listing_id)
        buy_agent = db.get(BuyAgent, negotiation.buy_agent_id)
        if buy_agent is None:
            raise ResourceNotFoundError("buy_agent", negotiation.buy_agent_id)
        sell_agent = db.query(SellAgent).filter(SellAgent.listing_id == listing.id).first()

        return OrchestrationContext(
            listing=ListingInfo.model_validate(listing),
            buy_agent=BuyAgentInfo.model_validate(buy_agent),
            sell_agent=SellAgentInfo.model_validate(sell_agent) if sell_agent else None,
            negotiation=NegotiationSnapshot.model_validate(negotiation),
            messages=[MessageRecord.from_row(row) for row in _ordered_messages(db, negotiation.id)],
        )

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def _find_active(self, db: Session, buy_agent_id: str, listing_id: str) -> Optional[Negotiation]:
        return (
            db.query(Negotiation)
            .filter(
                Negotiation.buy_agent_id == buy_agent_id,
                Negotiation.listing_id == listing_id,
                Negotiation.state.notin_(TERMINAL_STATES),
            )
            .first()
        )

    def _insert_negotiation(self, buy_agent_id: str, listing_id: str) -> Tuple[NegotiationSummary, bool]:
        with get_db() as db:
            existing = self._find_active(db, buy_agent_id, listing_id)
            if existing is not None:
                return NegotiationSummary.model_validate(existing), False

            listing = db.get(Listing, listing_id)
            if listing is None:
                raise ResourceNotFoundError("listing", listing_id)
            buy_agent = db.get(BuyAgent, buy_agent_id)
            if buy_agent is None:
                raise ResourceNotFoundError("buy_agent", buy_agent_id)

            negotiation = Negotiation(
                buy_agent_id=buy_agent_id,
                listing_id=listing_id,
                state=NegotiationState.NEGOTIATING,
                ball=BallOwner.BUYER,
            )
            db.add(negotiation)
            if listing.status == ListingStatus.ACTIVE:
                listing.status = ListingStatus.NEGOTIATING
            db.flush()

            record_event(
                db,
                EventType.NEGOTIATION_STARTED,
                {
                    "negotiation_id": negotiation.id,
                    "listing_title": listing.title,
                    "buy_agent_name": buy_agent.name,
                    "ask_price": listing.ask_price,
                },
                negotiation_id=negotiation.id,
                listing_id=listing_id,
                user_id=buy_agent.user_id,
            )
            logger.info(f"Negotiation {negotiation.id} started (buy_agent={buy_agent_id}, listing={listing_id})")
            return NegotiationSummary.model_validate(negotiation), True

    async def create_negotiation(
        self,
        buy_agent_id: str,
        listing_id: str,
        auto_start: bool = False,
    ) -> Tuple[NegotiationSummary, bool]:
        """
        Create the negotiation for a pair, or return the active one.

        Returns:
            (negotiation, created)

        Raises:
            ResourceNotFoundError: listing or buy agent missing
        """
        try:
            summary, created = self._insert_negotiation(buy_agent_id, listing_id)
        except IntegrityError:
            # Lost a race on the active-pair unique index
            with get_db() as db:
                existing = self._find_active(db, buy_agent_id, listing_id)
                if existing is None:
                    raise
                summary, created = NegotiationSummary.model_validate(existing), False

        if created and auto_start:
            self.schedule_step(summary.id)
        return summary, created

    # ------------------------------------------------------------------
    # Agent steps
    # ------------------------------------------------------------------

    def _check_steppable(self, negotiation: Negotiation) -> None:
        if negotiation.state != NegotiationState.NEGOTIATING:
            raise InvalidStateError(
                f"Negotiation is not in negotiating state (current: {negotiation.state.value})",
                current_state=negotiation.state.value,
            )
        if negotiation.ball == BallOwner.HUMAN:
            raise AwaitingHumanInputError(negotiation.id)

    def _persist_step(self, ctx: OrchestrationContext, result: OrchestrationResult) -> StepOutcome:
        with get_db() as db:
            negotiation = self._get_row(db, ctx.negotiation.id)
            row = Message(
                negotiation_id=negotiation.id,
                role=result.role,
                raw=result.raw,
                parsed=result.parsed.model_dump(mode="json"),
            )
            db.add(row)

            if result.is_agreed:
                negotiation.state = NegotiationState.AGREED
                negotiation.agreed_price = result.agreed_price
            negotiation.ball = result.new_ball
            negotiation.updated_at = datetime.utcnow()
            db.flush()

            event_type = classify_step_event(result)
            payload = {
                "negotiation_id": negotiation.id,
                "message_id": row.message_id,
                "role": result.role.value,
                "status_message": result.parsed.status_message,
                "price_proposal": result.parsed.price_proposal,
                "ball": result.new_ball.value,
            }
            if result.is_agreed:
                payload["agreed_price"] = result.agreed_price
            if result.parsed.user_prompt is not None:
                payload["question"] = result.parsed.user_prompt.question
                payload["target"] = result.parsed.user_prompt.target
            record_event(db, event_type, payload, negotiation_id=negotiation.id, listing_id=negotiation.listing_id)

            outcome = StepOutcome(
                message=MessageRecord.from_row(row),
                negotiation=NegotiationSnapshot.model_validate(negotiation),
                is_agreed=result.is_agreed,
            )

        logger.info(
            f"Step persisted for {ctx.negotiation.id}: {result.role.value} -> {event_type.value} "
            f"(ball={result.new_ball.value}, agreed={result.is_agreed})"
        )
        return outcome

    def _record_processing(self, ctx: OrchestrationContext, role: MessageRole) -> None:
        """Log the "agent thinking" notice so polling clients see it too."""
        with get_db() as db:
            record_event(
                db,
                EventType.AGENT_PROCESSING,
                {"negotiation_id": ctx.negotiation.id, "role": role.value},
                negotiation_id=ctx.negotiation.id,
                listing_id=ctx.listing.id,
            )

    def _should_continue(self, ctx: OrchestrationContext, outcome: StepOutcome) -> bool:
        """
        Decide whether an auto-continued chain schedules another step.

        A chain ends at agreement or a human-held ball. It also ends at the
        message cap and when both agents repeated their last price.
        """
        if outcome.is_agreed or outcome.negotiation.ball == BallOwner.HUMAN:
            return False

        messages = [*ctx.messages, outcome.message]
        negotiation_id = ctx.negotiation.id
        if len(messages) >= settings.AUTO_CONTINUE_MAX_MESSAGES:
            logger.info(f"Auto-continue stopped for {negotiation_id}: {len(messages)} messages reached the cap")
            return False
        if is_price_stalemate(messages):
            logger.info(f"Auto-continue stopped for {negotiation_id}: both agents repeated their last price")
            return False
        return True

    async def run_step(self, negotiation_id: str, auto_continue: bool = False) -> StepOutcome:
        """
        Execute one agent turn.

        Raises:
            NegotiationNotFoundError: unknown id
            InvalidStateError: not negotiating
            AwaitingHumanInputError: ball is with a human
            StepConflictError: a step for this negotiation is already running
            LLMProviderError: backend failure; no message is persisted
        """
        with get_db() as db:
            self._check_steppable(self._get_row(db, negotiation_id))

        with self.guard.hold(negotiation_id):
            with get_db() as db:
                negotiation = self._get_row(db, negotiation_id)
                self._check_steppable(negotiation)
                ctx = self._load_context(db, negotiation)

            agent = acting_role(ctx)
            self._record_processing(ctx, agent.role)
            self.hub.publish(negotiation_id, processing_delta(negotiation_id, agent.role.value))

            provider = self._provider_getter()
            if provider.is_configured():
                result = await run_orchestration_step(ctx, provider)
            else:
                result = generate_demo_response(ctx)

            outcome = self._persist_step(ctx, result)

        self.hub.publish(negotiation_id, update_delta(outcome.negotiation, outcome.message))

        if auto_continue and self._should_continue(ctx, outcome):
            self.schedule_step(negotiation_id)
        return outcome

    # ------------------------------------------------------------------
    # Human replies
    # ------------------------------------------------------------------

    async def submit_human_response(
        self,
        negotiation_id: str,
        response: str,
        target: Optional[str] = None,
        auto_continue: bool = False,
    ) -> StepOutcome:
        """
        Record a human's answer to the latest agent question and return the ball.

        The ball goes back to the side whose agent asked. A stored or
        client-supplied target that disagrees is logged and ignored.
        """
        response = (response or "").strip()
        if not response:
            raise ValidationError("Response must not be empty", [{"field": "response", "message": "required"}])

        with get_db() as db:
            negotiation = self._get_row(db, negotiation_id)
            self._check_awaiting_human(negotiation)
        if self.guard.is_busy(negotiation_id):
            raise StepConflictError(negotiation_id)

        with self.guard.hold(negotiation_id):
            with get_db() as db:
                negotiation = self._get_row(db, negotiation_id)
                self._check_awaiting_human(negotiation)

                latest = (
                    db.query(Message)
                    .filter(Message.negotiation_id == negotiation_id)
                    .order_by(Message.created_at.desc(), Message.id.desc())
                    .first()
                )
                question = MessageRecord.from_row(latest) if latest is not None else None
                if (
                    question is None
                    or question.role not in BALL_FOR_ROLE
                    or question.parsed is None
                    or question.parsed.user_prompt is None
                ):
                    raise InvalidStateError(
                        "No pending agent question to answer",
                        current_state=negotiation.state.value,
                    )

                new_ball = BALL_FOR_ROLE[question.role]
                side = new_ball.value
                stored_target = question.parsed.user_prompt.target
                if stored_target != side:
                    logger.warning(
                        f"Negotiation {negotiation_id}: stored prompt target '{stored_target}' "
                        f"disagrees with asking role {question.role.value}; routing to {side}"
                    )
                if target and target != side:
                    logger.warning(
                        f"Negotiation {negotiation_id}: client target '{target}' disagrees with "
                        f"asking role {question.role.value}; routing to {side}"
                    )

                parsed = ParsedMessage(
                    answer=response,
                    status_message=f"Human ({side}) responded",
                    price_proposal=extract_dollar_amount(response),
                )
                row = Message(
                    negotiation_id=negotiation_id,
                    role=MessageRole.HUMAN,
                    raw=response,
                    parsed=parsed.model_dump(mode="json"),
                )
                db.add(row)
                negotiation.ball = new_ball
                negotiation.updated_at = datetime.utcnow()
                db.flush()

                record_event(
                    db,
                    EventType.HUMAN_RESPONDED,
                    {
                        "negotiation_id": negotiation_id,
                        "message_id": row.message_id,
                        "side": side,
                        "price_proposal": parsed.price_proposal,
                        "ball": side,
                    },
                    negotiation_id=negotiation_id,
                    listing_id=negotiation.listing_id,
                )

                outcome = StepOutcome(
                    message=MessageRecord.from_row(row),
                    negotiation=NegotiationSnapshot.model_validate(negotiation),
                    is_agreed=False,
                )

        logger.info(f"Human ({side}) responded on {negotiation_id}; ball -> {side}")
        self.hub.publish(negotiation_id, update_delta(outcome.negotiation, outcome.message))

        if auto_continue:
            self.schedule_step(negotiation_id)
        return outcome

    def _check_awaiting_human(self, negotiation: Negotiation) -> None:
        if negotiation.state != NegotiationState.NEGOTIATING:
            raise InvalidStateError(
                f"Negotiation is not in negotiating state (current: {negotiation.state.value})",
                current_state=negotiation.state.value,
            )
        if negotiation.ball != BallOwner.HUMAN:
            raise InvalidStateError(
                "Negotiation is not waiting for human input",
                current_state=negotiation.state.value,
                ball=negotiation.ball.value,
            )

    # ------------------------------------------------------------------
    # Auto-continue
    # ------------------------------------------------------------------

    def schedule_step(self, negotiation_id: str, delay: Optional[float] = None) -> asyncio.Task:
        """Run another auto-continued step after `delay` seconds."""
        delay = settings.AUTO_CONTINUE_DELAY_SECONDS if delay is None else delay
        task = asyncio.get_running_loop().create_task(self._auto_continue(negotiation_id, delay))
        self._pending_tasks.add(task)
        task.add_done_callback(self._pending_tasks.discard)
        return task

    async def _auto_continue(self, negotiation_id: str, delay: float) -> None:
        await asyncio.sleep(delay)
        try:
            await self.run_step(negotiation_id, auto_continue=True)
        except APIException as e:
            logger.info(f"Auto-continue stopped for {negotiation_id}: {e.code}")
        except Exception as e:
            logger.error(f"Auto-continue failed for {negotiation_id}: {e}", exc_info=True)

    @property
    def pending_count(self) -> int:
        return len(self._pending_tasks)

    async def wait_for_pending(self) -> None:
        """Wait until no auto-continue chain is scheduled or running."""
        while self._pending_tasks:
            await asyncio.gather(*list(self._pending_tasks), return_exceptions=True)

    async def drain(self) -> None:
        """Cancel scheduled auto-continue tasks (shutdown)."""
        tasks = list(self._pending_tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info(f"Cancelled {len(tasks)} pending auto-continue task(s)")
        self._pending_tasks.clear()


# Singleton instance
negotiation_manager = NegotiationManager()
