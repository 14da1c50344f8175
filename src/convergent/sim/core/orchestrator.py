from __future__ import annotations

import asyncio
import inspect
import logging
from enum import Enum
from typing import AsyncIterator, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, Union

from .agent import Agent, TranscriptEntry, Vote, WeightProfile
from .config import SimulationConfig
from .field import FlockField
from .rng import DeterministicRng
from ..systems import adaptation, consensus, lifecycle, metrics as metrics_system, moves, prompts
from ..systems.groups import find_clusters
from ..systems.similarity import mean_pairwise_similarity
from ..systems.speakers import select_speakers
from ..systems.traits import default_weight_profile
from ..types.events import (
    AgentJoined,
    AgentLeft,
    AgentMessage,
    Completed,
    Failed,
    PositionSnapshot,
    SimulationEvent,
    Start,
    Telemetry,
)

logger = logging.getLogger(__name__)

GenerateFn = Callable[[str, str, float, int], Union[str, Awaitable[str]]]
EmbedFn = Callable[[str], Union[Sequence[float], Awaitable[Sequence[float]]]]

TICKS_PER_ACTIVITY = 24
MIN_MOTION_TICKS = 8
SNAPSHOT_EVERY = 6
MIN_ACTIVE = 2


class GenerationFailure(RuntimeError):
    """A generation or embedding call rejected or timed out; the run cannot continue."""


class RunState(str, Enum):
    IDLE = "Idle"
    RUNNING = "Running"
    COMPLETED = "Completed"
    ABORTED = "Aborted"
    CANCELLED = "Cancelled"


def motion_ticks(activity_rate: float) -> int:
    return max(MIN_MOTION_TICKS, int(round(TICKS_PER_ACTIVITY * activity_rate)))


class TurnOrchestrator:
    """Drives one simulation run and yields its events in causal order.

    The run is an async generator: iterate :meth:`run` to advance it. Turns,
    clusters and speakers are processed strictly one after another, and each
    generation call is awaited before the next prompt is built.
    """

    def __init__(
        self,
        config: SimulationConfig,
        generate: GenerateFn,
        embed: Optional[EmbedFn] = None,
        rng: Optional[DeterministicRng] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._config = config.clamped()
        self._generate = generate
        self._embed = embed
        self._rng = rng if rng is not None else DeterministicRng(self._config.seed)
        self._sleep = sleep
        self._state = RunState.IDLE
        self._cancelled = False
        self._pool: List[Agent] = lifecycle.build_agent_pool(self._config, self._rng)
        self._agents: Dict[str, Agent] = {agent.id: agent for agent in self._pool}
        self._names: Dict[str, str] = {agent.id: agent.name for agent in self._pool}
        self._field = FlockField(self._config.flock, self._rng)
        self._profiles: Dict[str, WeightProfile] = {}
        self._defaults = default_weight_profile(self._config.flock)
        self._transcript: List[TranscriptEntry] = []
        self._embeddings: Dict[str, Sequence[float]] = {}
        self._turn = 0

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def field(self) -> FlockField:
        return self._field

    @property
    def pool(self) -> List[Agent]:
        return self._pool

    @property
    def profiles(self) -> Dict[str, WeightProfile]:
        return self._profiles

    @property
    def transcript(self) -> List[TranscriptEntry]:
        return self._transcript

    @property
    def turn(self) -> int:
        return self._turn

    def cancel(self) -> None:
        self._cancelled = True

    async def run(self) -> AsyncIterator[SimulationEvent]:
        if self._state is not RunState.IDLE:
            raise RuntimeError(f"run() already used (state={self._state.value})")
        self._state = RunState.RUNNING
        conversation = self._config.conversation
        logger.info(
            "starting run: %d agents, %d turns, seed=%s", conversation.agent_count, conversation.max_turns, self._config.seed
        )
        try:
            yield Start(goal=conversation.goal, config=self._config.to_dict())
            for agent in self._pool[: conversation.agent_count]:
                lifecycle.activate(self._field, agent, self._config, self._profiles)
                yield AgentJoined(id=agent.id, name=agent.name, color=agent.color, turn=0)
            yield self._position_snapshot()

            for turn in range(1, conversation.max_turns + 1):
                if self._cancelled:
                    break
                self._turn = turn
                telemetry: Optional[Telemetry] = None
                async for event in self._run_turn(turn):
                    if isinstance(event, Telemetry):
                        telemetry = event
                    yield event
                if self._cancelled:
                    break
                if telemetry is not None and self._similarity_reached(telemetry):
                    logger.info("similarity threshold reached at turn %d", turn)
                    self._state = RunState.COMPLETED
                    yield Completed(turns=turn, reason="similarity")
                    return

            if self._cancelled:
                self._state = RunState.CANCELLED
                logger.info("run cancelled at turn %d", self._turn)
                return
            self._state = RunState.COMPLETED
            logger.info("run completed after %d turns", conversation.max_turns)
            yield Completed(turns=conversation.max_turns)
        except (GeneratorExit, asyncio.CancelledError):
            self._state = RunState.CANCELLED
            raise
        except Exception as exc:
            self._state = RunState.ABORTED
            logger.warning("run aborted at turn %d: %s", self._turn, exc)
            yield Failed(message=str(exc) or exc.__class__.__name__)

    async def _run_turn(self, turn: int) -> AsyncIterator[SimulationEvent]:
        config = self._config
        conversation = config.conversation

        joined = self._roll_join(turn)
        if joined is not None:
            yield joined
        left = self._roll_leave(turn)
        if left is not None:
            yield left

        for tick in range(1, motion_ticks(config.flock.activity_rate) + 1):
            self._field.step()
            if tick % SNAPSHOT_EVERY == 0:
                yield self._position_snapshot(tick)

        clusters = find_clusters(self._field.positions(), config.flock.talk_radius)
        self._rng.shuffle(clusters)

        speak_bias = {agent_id: state.speak_bias for agent_id, state in self._field.states.items()}
        entries: List[consensus.ConsensusEntry] = []
        messages = 0
        for cluster in clusters:
            speakers = select_speakers(cluster, speak_bias, conversation.speak_rate, self._rng)
            spoken: List[Tuple[str, Vote]] = []
            for speaker_id in speakers:
                if self._cancelled:
                    return
                message, vote = await self._speak(turn, speaker_id, cluster)
                spoken.append((speaker_id, vote))
                messages += 1
                yield message
                if conversation.turn_delay_ms > 0:
                    await self._sleep(conversation.turn_delay_ms / 1000.0)
            self._settle_cluster(cluster, spoken, entries)

        metrics = metrics_system.create_metrics(turn, clusters, entries, messages, self._current_similarity())
        yield Telemetry(metrics=metrics)

    def _roll_join(self, turn: int) -> Optional[AgentJoined]:
        if len(self._field) >= len(self._pool):
            return None
        if not self._rng.chance(self._config.conversation.join_prob):
            return None
        inactive = [agent for agent in self._pool if agent.id not in self._field]
        agent = self._rng.choice(inactive)
        lifecycle.activate(self._field, agent, self._config, self._profiles, position=self._rng.next_position())
        logger.info("turn %d: %s joined", turn, agent.id)
        return AgentJoined(id=agent.id, name=agent.name, color=agent.color, turn=turn)

    def _roll_leave(self, turn: int) -> Optional[AgentLeft]:
        if len(self._field) <= MIN_ACTIVE:
            return None
        if not self._rng.chance(self._config.conversation.leave_prob):
            return None
        agent_id = self._rng.choice(self._field.active_ids())
        self._field.remove(agent_id)
        logger.info("turn %d: %s left", turn, agent_id)
        return AgentLeft(id=agent_id, turn=turn)

    async def _speak(self, turn: int, agent_id: str, cluster: List[str]) -> Tuple[AgentMessage, Vote]:
        conversation = self._config.conversation
        agent = self._agents[agent_id]
        state = self._field.states[agent_id]
        members = set(cluster)
        context = [entry for entry in self._transcript if entry.speaker_id in members]
        context = context[-conversation.max_context_messages:]
        move = moves.choose_move(agent.traits, self._rng)
        peers = [member for member in cluster if member != agent_id]
        peer_name = self._names[self._rng.choice(peers)] if peers else None

        system_prompt = prompts.build_system_prompt(agent, conversation.goal, conversation.max_tokens)
        user_prompt = prompts.build_user_prompt(context, self._names, move, peer_name, conversation.voting)
        temperature = lifecycle.speaking_temperature(agent, state.weights)
        reply = await self._call_generate(system_prompt, user_prompt, temperature, conversation.max_tokens)

        if conversation.voting:
            text, vote = consensus.parse_vote(reply)
        else:
            text, vote = reply.strip(), Vote()
        self._transcript.append(TranscriptEntry(speaker_id=agent_id, text=text, turn=turn))
        self._field.ignite(agent_id)
        logger.debug("turn %d: %s (%s) said %r", turn, agent_id, move.value, text)

        if self._embed is not None and conversation.embedding_similarity:
            self._embeddings[agent_id] = await self._call_embed(text)

        message = AgentMessage(
            turn=turn,
            agent_id=agent_id,
            name=agent.name,
            color=agent.color,
            text=text,
            position=(state.position.x, state.position.y),
            active_ids=list(cluster),
            move=move.value,
            viewpoint_label=agent.viewpoint.label if agent.viewpoint is not None else None,
            stance=vote.stance if conversation.voting else None,
            proposal=vote.proposal if conversation.voting else None,
        )
        return message, vote

    def _settle_cluster(
        self, cluster: List[str], spoken: List[Tuple[str, Vote]], entries: List[consensus.ConsensusEntry]
    ) -> None:
        conversation = self._config.conversation
        votes = [vote for _, vote in spoken]
        winner = consensus.winning_proposal(votes) if conversation.voting else None
        if conversation.voting:
            entry = consensus.tally_consensus(votes, len(cluster), conversation.consensus_threshold)
            if entry is not None:
                entries.append(entry)
        adapt = self._config.adaptation
        if adapt.adapt_weights:
            adaptation.adapt_cluster(
                spoken,
                self._profiles,
                winner.key if winner is not None else None,
                adapt.adapt_rate,
                self._defaults,
            )

    def _current_similarity(self) -> Optional[float]:
        if self._embed is None or not self._config.conversation.embedding_similarity:
            return None
        active = {agent_id: vector for agent_id, vector in self._embeddings.items() if agent_id in self._field}
        return mean_pairwise_similarity(active)

    def _similarity_reached(self, telemetry: Telemetry) -> bool:
        conversation = self._config.conversation
        similarity = telemetry.metrics.similarity
        if not conversation.stop_on_similarity or similarity is None:
            return False
        return similarity >= conversation.similarity_threshold

    def _position_snapshot(self, tick: int = 0) -> PositionSnapshot:
        positions = {
            agent_id: (state.position.x, state.position.y) for agent_id, state in self._field.states.items()
        }
        return PositionSnapshot(turn=self._turn, tick=tick, positions=positions)

    async def _call_generate(self, system_prompt: str, user_prompt: str, temperature: float, max_tokens: int) -> str:
        result = await self._await_collaborator(
            "generation", lambda: self._generate(system_prompt, user_prompt, temperature, max_tokens)
        )
        return result if isinstance(result, str) else str(result)

    async def _call_embed(self, text: str) -> Sequence[float]:
        assert self._embed is not None
        embed = self._embed
        vector = await self._await_collaborator("embedding", lambda: embed(text))
        return [float(value) for value in vector]

    async def _await_collaborator(self, label: str, call: Callable[[], object]) -> object:
        timeout = self._config.conversation.generation_timeout_seconds
        try:
            result = call()
            if inspect.isawaitable(result):
                result = await asyncio.wait_for(result, timeout)
        except asyncio.TimeoutError as exc:
            raise GenerationFailure(f"{label} call timed out after {timeout:g}s") from exc
        except GenerationFailure:
            raise
        except Exception as exc:
            raise GenerationFailure(f"{label} call failed: {exc}") from exc
        return result
