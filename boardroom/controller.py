"""Discussion lifecycle: the single-writer state machine driving one discussion."""

import asyncio
import logging
import time
import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from datetime import datetime

from boardroom.consensus import ConsensusAssessment, evaluate_consensus
from boardroom.errors import AgentAbstention
from boardroom.event_log import EventLog, utcnow
from boardroom.invoker import AgentInvoker
from boardroom.models import (
    AgentEvent,
    AgentRequest,
    ConsensusResult,
    Discussion,
    DiscussionStatus,
    EventType,
    Plan,
)
from boardroom.scheduler import Turn, TurnScheduler
from boardroom.synthesis import build_consensus

logger = logging.getLogger(__name__)

# Warn when fewer than this many agents respond in the proposal round
_MIN_QUALITY_RESPONSES = 3


class DiscussionRecorder(ABC):
    """Durable sink for terminal discussions. Called once per discussion."""

    @abstractmethod
    def record(self, discussion: Discussion) -> None:
        ...


class DiscussionController:
    """Owns and mutates exactly one discussion.

    All writes happen inside the controller's own task. Readers call
    ``snapshot()`` and receive the last committed immutable ``Discussion``;
    a new snapshot is committed after each round barrier and on the terminal
    transition, so two reads with no round in between are identical.
    """

    def __init__(
        self,
        plan: Plan,
        invoker: AgentInvoker,
        *,
        discussion_id: str | None = None,
        session_id: str = "",
        context: str = "",
        user_message: str | None = None,
        recorders: Sequence[DiscussionRecorder] = (),
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._plan = plan
        self._invoker = invoker
        self._scheduler = TurnScheduler(plan)
        self._id = discussion_id or str(uuid.uuid4())
        self._session_id = session_id
        self._context = context
        self._user_message = user_message
        self._recorders = tuple(recorders)
        self._clock = clock

        self._log = EventLog(clock)
        self._status = DiscussionStatus.ACTIVE
        self._consensus: ConsensusResult | None = None
        self._start_time = clock()
        self._end_time: datetime | None = None
        self._rounds_completed = 0
        self._started_monotonic = time.monotonic()

        self._cancel_requested = False
        self._task: asyncio.Task | None = None
        self._done = asyncio.Event()
        self._snapshot = self._build_snapshot()

    @property
    def id(self) -> str:
        return self._id

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def is_terminal(self) -> bool:
        return self._status is not DiscussionStatus.ACTIVE

    def snapshot(self) -> Discussion:
        return self._snapshot

    def start(self) -> asyncio.Task:
        """Spawn the progression task. A controller can only be started once."""
        if self._task is not None:
            raise RuntimeError(f"Discussion {self._id} is already running")
        self._started_monotonic = time.monotonic()
        self._task = asyncio.create_task(self._run(), name=f"discussion-{self._id}")
        return self._task

    def cancel(self) -> None:
        """Request cancellation. Takes effect before the next round starts."""
        if not self.is_terminal:
            logger.warning("Cancellation requested for discussion %s", self._id)
            self._cancel_requested = True

    async def wait(self, timeout: float | None = None) -> Discussion:
        """Wait until the discussion is terminal and return its final snapshot."""
        await asyncio.wait_for(self._done.wait(), timeout=timeout)
        return self._snapshot

    async def _run(self) -> None:
        logger.info(
            "Discussion %s started: %d agents, max %d rounds, threshold %.2f",
            self._id, len(self._plan.required_agents),
            self._plan.max_rounds, self._plan.consensus_threshold,
        )
        try:
            while not self.is_terminal:
                try:
                    await self._tick()
                except Exception:
                    logger.exception("Internal fault in discussion %s, round %d", self._id, self._rounds_completed)
                    self._terminate(DiscussionStatus.NEEDS_MORE_INPUT)
        except asyncio.CancelledError:
            self._terminate(DiscussionStatus.NEEDS_MORE_INPUT)
            raise
        finally:
            self._record()

    async def _tick(self) -> None:
        if self._cancel_requested:
            logger.info("Discussion %s cancelled before round %d", self._id, self._rounds_completed)
            self._terminate(DiscussionStatus.NEEDS_MORE_INPUT)
            return

        round_number = self._rounds_completed
        turns = self._scheduler.turns_for_round(round_number, self._log.snapshot())
        if not turns:
            logger.warning("Discussion %s has no responsive agents left for round %d", self._id, round_number)
            self._terminate(DiscussionStatus.NEEDS_MORE_INPUT)
            return

        logger.info("Discussion %s: starting round %d with %d agents", self._id, round_number, len(turns))
        responded = await self._play_round(turns)
        self._rounds_completed += 1
        self._commit()

        if round_number == 0 and len(turns) >= _MIN_QUALITY_RESPONSES and responded < _MIN_QUALITY_RESPONSES:
            logger.warning(
                "Only %d/%d agents responded in the proposal round of discussion %s",
                responded, len(turns), self._id,
            )
        logger.info(
            "Discussion %s: round %d complete, %d/%d agents responded",
            self._id, round_number, responded, len(turns),
        )

        assessment = evaluate_consensus(self._log.snapshot(), self._plan, round_number)
        logger.debug(
            "Discussion %s round %d: agreement %.2f (%d/%d), confidence %.2f",
            self._id, round_number, assessment.agreement_ratio,
            len(assessment.agreeing), len(assessment.contributors),
            assessment.aggregate_confidence,
        )

        # Threshold check precedes both the round budget and the global timeout.
        if assessment.ready:
            await self._synthesize(assessment)
            return
        if self._scheduler.is_exhausted(self._rounds_completed):
            logger.info("Discussion %s exhausted %d rounds without consensus", self._id, self._plan.max_rounds)
            self._terminate(DiscussionStatus.NEEDS_MORE_INPUT)
            return
        if time.monotonic() - self._started_monotonic >= self._plan.timeout_minutes * 60:
            logger.warning("Discussion %s hit its %.1f minute timeout", self._id, self._plan.timeout_minutes)
            self._terminate(DiscussionStatus.NEEDS_MORE_INPUT)

    async def _play_round(self, turns: Sequence[Turn]) -> int:
        """Invoke every turn, wait for the barrier, append replies. Returns responder count."""
        history = self._log.snapshot()
        requests = [self._request_for(turn, history) for turn in turns]
        results = await self._invoker.invoke_all(requests)

        responded = 0
        for turn, result in zip(turns, results):
            if isinstance(result, AgentAbstention):
                continue  # already logged by the invoker
            event_type = turn.expected_type or result.type
            self._log.append(AgentEvent(
                id=str(uuid.uuid4()),
                type=event_type,
                from_agent=turn.agent_id,
                content=result.content,
                round_number=turn.round_number,
                confidence=None if event_type is EventType.QUESTION else result.confidence,
            ))
            responded += 1
        return responded

    async def _synthesize(self, assessment: ConsensusAssessment) -> None:
        turn = self._scheduler.synthesis_turn(assessment.round_number)
        logger.info(
            "Discussion %s: consensus ready (%.2f >= %.2f), requesting synthesis from %s",
            self._id, assessment.agreement_ratio, self._plan.consensus_threshold, turn.agent_id,
        )
        result = await self._invoker.invoke(self._request_for(turn, self._log.snapshot()))
        if isinstance(result, AgentAbstention):
            logger.warning(
                "Facilitator %s produced no synthesis for discussion %s: %s",
                turn.agent_id, self._id, result.reason,
            )
            self._terminate(DiscussionStatus.NEEDS_MORE_INPUT)
            return

        self._log.append(AgentEvent(
            id=str(uuid.uuid4()),
            type=EventType.SYNTHESIS,
            from_agent=turn.agent_id,
            content=result.content,
            round_number=turn.round_number,
            confidence=result.confidence,
        ))
        self._terminate(DiscussionStatus.CONSENSUS_REACHED, build_consensus(assessment, result.content))

    def _request_for(self, turn: Turn, history: tuple[AgentEvent, ...]) -> AgentRequest:
        return AgentRequest(
            agent_id=turn.agent_id,
            topic=self._plan.discussion_topic,
            phase=turn.phase,
            round_number=turn.round_number,
            history=history,
            context=self._context,
            user_message=self._user_message,
        )

    def _terminate(self, status: DiscussionStatus, consensus: ConsensusResult | None = None) -> None:
        """The single transition out of ``active``. Later calls are no-ops."""
        if self.is_terminal:
            return
        self._status = status
        self._consensus = consensus
        end = self._clock()
        last = self._log.last_timestamp()
        self._end_time = max(end, last) if last is not None else end
        self._commit()
        self._done.set()
        logger.info(
            "Discussion %s finished: %s after %d rounds, %d events",
            self._id, status.value, self._rounds_completed, len(self._log),
        )

    def _commit(self) -> None:
        self._snapshot = self._build_snapshot()

    def _build_snapshot(self) -> Discussion:
        return Discussion(
            id=self._id,
            session_id=self._session_id,
            topic=self._plan.discussion_topic,
            participants=self._plan.required_agents,
            status=self._status,
            events=self._log.snapshot(),
            start_time=self._start_time,
            consensus=self._consensus,
            end_time=self._end_time,
            rounds_completed=self._rounds_completed,
        )

    def _record(self) -> None:
        for recorder in self._recorders:
            try:
                recorder.record(self._snapshot)
            except Exception as exc:
                logger.warning("Recorder %s failed for discussion %s: %s", type(recorder).__name__, self._id, exc)
