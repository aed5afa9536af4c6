import asyncio
import logging
from typing import Callable, Optional

from dicecalc.dice import RandomSource, default_rng
from dicecalc.errors import CapacityError, ParseError
from dicecalc.warhammer.form import CalculatorForm
from dicecalc.warhammer.profile import Attacker, Defender
from dicecalc.warhammer.simulation import GenerationCounter, MonteCarloRun, SimulationConfig, Statistics

logger = logging.getLogger(__name__)


def _ignore(*args) -> None:
    pass


class SimulationSession:
    """Re-runs the simulation whenever the form changes.

    Submissions are debounced; every submission advances the generation, so
    a run started for an older form stops at its next chunk boundary and
    never publishes. Must be used from within a running event loop.
    """

    def __init__(self,
                 on_result: Callable[[Statistics], None],
                 on_progress: Callable[[float], None] = _ignore,
                 on_message: Callable[[str], None] = _ignore,
                 on_error: Callable[[Optional[str], str], None] = _ignore,
                 debounce_seconds: float = SimulationConfig.debounce_seconds,
                 iterations: int = SimulationConfig.iterations,
                 rng: RandomSource = default_rng):
        self.on_result = on_result
        self.on_progress = on_progress
        self.on_message = on_message
        self.on_error = on_error
        self.debounce_seconds = debounce_seconds
        self.iterations = iterations
        self.rng = rng
        self.generations = GenerationCounter()
        self._timer: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def generation(self) -> int:
        return self.generations.current

    def cancel(self) -> None:
        """Invalidate the pending and in-flight runs"""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self.generations.advance()

    def submit(self, form: CalculatorForm) -> None:
        self.cancel()
        try:
            attacker, defender = form.build()
        except CapacityError as e:
            self.on_message(str(e))
            return
        except ParseError as e:
            self.on_error(e.field, str(e))
            return
        self.start(attacker, defender)

    def start(self, attacker: Attacker, defender: Defender) -> int:
        """Schedule a run for already validated models; returns its generation"""
        generation = self.generations.advance()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.debounce_seconds, self._launch, attacker, defender, generation)
        return generation

    def _launch(self, attacker: Attacker, defender: Defender, generation: int) -> None:
        self._timer = None
        run = MonteCarloRun(
            attacker, defender,
            iterations=self.iterations,
            rng=self.rng,
            generations=self.generations,
            generation=generation,
        )
        self._task = asyncio.ensure_future(self._run(run))

    async def _run(self, run: MonteCarloRun) -> None:
        statistics = await run.run_async(self.on_progress)
        if statistics is None or not self.generations.is_current(run.generation):
            logger.debug("Discarding run %d", run.generation)
            return
        self.on_result(statistics)

    async def wait(self) -> None:
        """Wait until no run is pending or in flight"""
        while True:
            if self._timer is not None:
                await asyncio.sleep(self.debounce_seconds)
                continue
            if self._task is not None and not self._task.done():
                await self._task
                continue
            return
