from dataclasses import dataclass, field
from enum import Enum, auto
from time import perf_counter
from typing import Callable, List, Optional, Tuple
import asyncio
import logging

from dicecalc.dice import RandomSource, default_rng
from dicecalc.warhammer.attack import attack_sequence
from dicecalc.warhammer.profile import Attacker, Defender

logger = logging.getLogger(__name__)


class SimulationConfig:
    iterations = 10_000
    chunk_size = 2_000
    debounce_seconds = 0.18
    sample_size = 5
    percentiles = (25, 50, 95, 99)


def percentile(values: List[int], p: int) -> int:
    """Nearest-rank percentile over the results sorted in descending order.

    Higher p selects smaller values, so p99 <= p95 <= p50 <= p25.
    """
    if not values:
        return 0
    ordered = sorted(values, reverse=True)
    index = (p * len(ordered) + 99) // 100 - 1
    return ordered[max(index, 0)]


@dataclass(frozen=True)
class Statistics:
    mean: float
    p25: int
    p50: int
    p95: int
    p99: int
    sample: Tuple[int, ...]
    iterations: int = 0
    elapsed: float = 0.0

    @classmethod
    def from_results(cls, results: List[int], elapsed: float = 0.0) -> 'Statistics':
        mean = sum(results) / len(results) if results else 0.0
        return cls(
            mean=mean,
            p25=percentile(results, 25),
            p50=percentile(results, 50),
            p95=percentile(results, 95),
            p99=percentile(results, 99),
            sample=tuple(results[:SimulationConfig.sample_size]),
            iterations=len(results),
            elapsed=elapsed,
        )

    def __str__(self) -> str:
        return "\n".join([
            f"mean - {self.mean:.2f}W",
            f"p25 - {self.p25}W",
            f"p50 - {self.p50}W",
            f"p95 - {self.p95}W",
            f"p99 - {self.p99}W",
        ])

    def sample_lines(self) -> List[str]:
        return [f"#{i + 1} - {w}W" for i, w in enumerate(self.sample)]


class GenerationCounter:
    """Monotonic counter; only the latest generation may publish results"""

    def __init__(self) -> None:
        self.current = 0

    def advance(self) -> int:
        self.current += 1
        return self.current

    def is_current(self, generation: int) -> bool:
        return generation == self.current


class RunState(Enum):
    IDLE = auto()
    RUNNING = auto()
    CANCELLED = auto()
    DONE = auto()


@dataclass
class MonteCarloRun:
    """One chunked, cancellable simulation.

    Each step() runs one chunk of iterations after checking that the run's
    generation is still the latest. A superseded run moves to CANCELLED and
    never computes statistics.
    """
    attacker: Attacker
    defender: Defender
    iterations: int = SimulationConfig.iterations
    rng: RandomSource = default_rng
    generations: GenerationCounter = field(default_factory=GenerationCounter)
    generation: Optional[int] = None
    chunk_size: int = SimulationConfig.chunk_size

    state: RunState = field(default=RunState.IDLE, init=False)
    cursor: int = field(default=0, init=False)
    results: List[int] = field(default_factory=list, init=False)
    statistics: Optional[Statistics] = field(default=None, init=False)

    def __post_init__(self):
        if self.iterations < 1:
            raise ValueError("iterations must be positive")
        if self.chunk_size < 1:
            raise ValueError("chunk_size must be positive")
        if self.generation is None:
            self.generation = self.generations.advance()
        self._started = 0.0

    @property
    def progress(self) -> float:
        return self.cursor / self.iterations

    @property
    def finished(self) -> bool:
        return self.state in (RunState.CANCELLED, RunState.DONE)

    def step(self) -> RunState:
        if self.finished:
            return self.state
        if self.state == RunState.IDLE:
            self.state = RunState.RUNNING
            self._started = perf_counter()
            logger.debug("Run %d started: %d iterations", self.generation, self.iterations)

        if not self.generations.is_current(self.generation):
            self.state = RunState.CANCELLED
            logger.debug("Run %d superseded at %d/%d", self.generation, self.cursor, self.iterations)
            return self.state

        end = min(self.cursor + self.chunk_size, self.iterations)
        for _ in range(self.cursor, end):
            self.results.append(attack_sequence(self.attacker, self.defender, self.rng))
        self.cursor = end

        if self.cursor == self.iterations:
            elapsed = perf_counter() - self._started
            self.statistics = Statistics.from_results(self.results, elapsed)
            self.state = RunState.DONE
            logger.info("Simulated %d iterations in %.3f seconds", self.iterations, elapsed)
        return self.state

    def run(self) -> Optional[Statistics]:
        while not self.finished:
            self.step()
        return self.statistics

    async def run_async(self, on_progress: Optional[Callable[[float], None]] = None) -> Optional[Statistics]:
        """Run chunk by chunk, yielding to the event loop between chunks"""
        if on_progress is not None and self.generations.is_current(self.generation):
            on_progress(0.0)
        while self.step() == RunState.RUNNING:
            if on_progress is not None:
                on_progress(self.progress)
            await asyncio.sleep(0)
        return self.statistics


def simulate(attacker: Attacker, defender: Defender,
             iterations: int = SimulationConfig.iterations,
             rng: Optional[RandomSource] = None) -> Statistics:
    run = MonteCarloRun(attacker, defender, iterations, rng or default_rng)
    statistics = run.run()
    if statistics is None:
        raise RuntimeError(f"Run ended in state {run.state.name} without statistics")
    return statistics
