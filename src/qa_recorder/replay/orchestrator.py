"""
Replay Orchestrator - Run a recording step by step.

Steps run sequentially with a speed-dependent delay. A failing step is
reported and the run moves on; only losing the page ends a run early.
A navigate step hands the rest of the run to the next page load through
a checkpoint, so a run can span several documents.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, TYPE_CHECKING

from pydantic import ValidationError

from qa_recorder.config import ReplaySettings, Settings, get_settings
from qa_recorder.config.settings import CARRIED_REPLAY_FIELDS
from qa_recorder.debugger.session import CDPDebuggerSession
from qa_recorder.exceptions import (
    DebuggerAttachError,
    PageClosedError,
    QARecorderError,
    SessionActiveError,
)
from qa_recorder.recorder.steps import NavigateStep, Recording, Step
from qa_recorder.replay.checkpoint import (
    CheckpointStore,
    ReplayCheckpoint,
    SessionStorageCheckpointStore,
)
from qa_recorder.replay.driver import PageDriver, PlaywrightPageDriver
from qa_recorder.replay.executor import StepExecutor
from qa_recorder.replay.status import RunState, StepState, StepStatus
from qa_recorder.selectors.resolver import SelectorResolver

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger(__name__)


@dataclass
class ReplayRun:
    """
    Outcome of one replay run.

    Attributes:
        recording_id: Id of the replayed recording
        state: Terminal (or current) run state
        events: Every status event in emission order
        step_statuses: Last status of each step, by index
        error: Reason for a FAILED run
    """
    recording_id: int
    state: RunState = RunState.RUNNING
    events: List[StepStatus] = field(default_factory=list)
    step_statuses: Dict[int, StepStatus] = field(default_factory=dict)
    error: Optional[str] = None

    def record(self, status: StepStatus) -> None:
        self.events.append(status)
        self.step_statuses[status.index] = status

    def absorb(self, other: "ReplayRun") -> None:
        """Fold a resumed continuation into this run."""
        for status in other.events:
            self.record(status)
        self.state = other.state
        self.error = other.error

    @property
    def failed_steps(self) -> List[int]:
        return sorted(i for i, s in self.step_statuses.items() if s.state == StepState.ERROR)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "recording_id": self.recording_id,
            "state": self.state.value,
            "steps": [self.step_statuses[i].to_dict() for i in sorted(self.step_statuses)],
            "error": self.error,
        }


class ReplayOrchestrator:
    """
    Sequential replay with checkpointed navigations.

    Example:
        >>> orchestrator = ReplayOrchestrator(driver, executor, MemoryCheckpointStore())
        >>> run = await orchestrator.run(recording, speed="fast")
        >>> while run.state == RunState.SUSPENDED:
        ...     run = await orchestrator.resume_pending()
    """

    def __init__(
        self,
        driver: PageDriver,
        executor: StepExecutor,
        checkpoint_store: CheckpointStore,
        settings: Optional[Settings] = None,
    ):
        self.driver = driver
        self.executor = executor
        self.checkpoint_store = checkpoint_store
        self.settings = settings or get_settings()
        self._running = False
        self._stop_requested = False
        self._replay_settings: ReplaySettings = self.settings.replay
        self._on_status_callbacks: List[Callable[[StepStatus], None]] = []

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested

    def on_status(self, callback: Callable[[StepStatus], None]) -> None:
        """Register a callback for every step status event."""
        self._on_status_callbacks.append(callback)

    async def run(self, recording: Recording, speed: Optional[str] = None) -> ReplayRun:
        """
        Replay a recording from its first step.

        Raises:
            SessionActiveError: If a run is already in progress
        """
        if self._running:
            raise SessionActiveError("A replay is already in progress", session_kind="replay")
        speed = speed or self.settings.replay.speed
        logger.info(f"Replaying '{recording.title}' ({len(recording.steps)} steps, speed={speed})")
        return await self._execute(recording.id, recording.steps, speed, offset=0)

    async def resume_pending(self) -> Optional[ReplayRun]:
        """
        Continue a run that a navigate step suspended.

        The checkpoint is consumed once; reported indices map onto the
        original recording.
        """
        if self._running:
            raise SessionActiveError("A replay is already in progress", session_kind="replay")
        checkpoint = await self.checkpoint_store.take()
        if checkpoint is None:
            return None

        resumed = Recording(title="resumed replay", steps=list(checkpoint.remaining_steps))
        offset = checkpoint.resume_from_index + 1
        logger.info(f"Resuming replay at step {offset} ({len(resumed.steps)} steps left)")
        return await self._execute(
            resumed.id,
            resumed.steps,
            checkpoint.speed,
            offset=offset,
            replay_settings=self._restore_settings(checkpoint.settings),
        )

    def _restore_settings(self, carried: Dict[str, Any]) -> Optional[ReplaySettings]:
        """Replay settings for a resumed run, or None to keep the current ones."""
        values = {name: value for name, value in carried.items() if name in CARRIED_REPLAY_FIELDS}
        if not values:
            return None
        try:
            return ReplaySettings(**{**self.settings.replay.model_dump(), **values})
        except ValidationError as e:
            logger.warning(f"Ignoring invalid settings in checkpoint: {e}")
            return None

    async def stop(self) -> None:
        """Stop after the in-flight step and drop any pending checkpoint."""
        self._stop_requested = True
        await self.checkpoint_store.clear()
        logger.info("Replay stop requested")

    def _emit(self, run: ReplayRun, status: StepStatus) -> None:
        run.record(status)
        if status.state == StepState.ERROR:
            logger.warning(f"Step {status.index} failed: {status.message}")
        else:
            logger.debug(f"Step {status.index}: {status.state.value}")
        for callback in self._on_status_callbacks:
            try:
                callback(status)
            except Exception as e:
                logger.warning(f"Status callback error: {e}")

    async def _attach_debugger(self) -> None:
        debugger = self.executor.debugger
        if debugger is None or not self._replay_settings.use_debugger:
            return
        try:
            await debugger.attach(self.driver.context_id)
        except DebuggerAttachError as e:
            logger.warning(f"Replaying with synthetic events: {e.message}")

    async def _detach_debugger(self) -> None:
        debugger = self.executor.debugger
        if debugger is not None:
            await debugger.detach(self.driver.context_id)

    async def _execute(
        self,
        recording_id: int,
        steps: Sequence[Step],
        speed: str,
        offset: int,
        replay_settings: Optional[ReplaySettings] = None,
    ) -> ReplayRun:
        self._running = True
        self._stop_requested = False
        run = ReplayRun(recording_id=recording_id)
        delay_s = self.settings.replay.delay_for(speed) / 1000

        previous_settings = self.executor.settings
        if replay_settings is not None:
            self.executor.settings = replay_settings
        self._replay_settings = replay_settings or self.settings.replay

        await self._attach_debugger()
        try:
            for i, step in enumerate(steps):
                index = offset + i
                if self._stop_requested:
                    run.state = RunState.STOPPED
                    break

                self._emit(run, StepStatus.executing(index))
                if delay_s:
                    await asyncio.sleep(delay_s)

                if isinstance(step, NavigateStep):
                    suspended = not self._stop_requested and await self._navigate(
                        run, step, steps[i + 1:], index, speed
                    )
                    if self._stop_requested:
                        # stop() may have cleared the slot before the checkpoint was written
                        await self.checkpoint_store.clear()
                        run.state = RunState.STOPPED
                        break
                    if suspended:
                        run.state = RunState.SUSPENDED
                        return run
                    continue

                try:
                    await self.executor.execute(step)
                except PageClosedError:
                    raise
                except QARecorderError as e:
                    self._emit(run, StepStatus.error(index, e.message))
                    continue
                except Exception as e:
                    logger.exception(f"Unexpected error in step {index}")
                    self._emit(run, StepStatus.error(index, str(e)))
                    continue
                self._emit(run, StepStatus.success(index))
            else:
                run.state = RunState.STOPPED if self._stop_requested else RunState.COMPLETED
        except PageClosedError as e:
            run.state = RunState.FAILED
            run.error = e.message
            logger.error(f"Replay aborted: {e.message}")
        finally:
            self._running = False
            self.executor.settings = previous_settings
            self._replay_settings = self.settings.replay
            if run.state != RunState.SUSPENDED:
                await self._safe_detach()

        logger.info(f"Replay finished: {run.state.value} ({len(run.failed_steps)} failed steps)")
        return run

    async def _navigate(
        self,
        run: ReplayRun,
        step: NavigateStep,
        remaining: Sequence[Step],
        index: int,
        speed: str,
    ) -> bool:
        """Write the checkpoint and navigate. Returns True when the run suspends."""
        checkpoint = ReplayCheckpoint(
            remaining_steps=list(remaining),
            speed=speed,
            resume_from_index=index,
            settings=self._replay_settings.carried(),
        )
        try:
            await self.checkpoint_store.write(checkpoint)
            logger.debug(f"Checkpoint written before navigating to {step.url}")
            await self.executor.execute(step)
        except PageClosedError:
            raise
        except QARecorderError as e:
            await self.checkpoint_store.clear()
            self._emit(run, StepStatus.error(index, e.message))
            return False

        self._emit(run, StepStatus.success(index))
        return True

    async def _safe_detach(self) -> None:
        try:
            await self._detach_debugger()
        except QARecorderError as e:
            logger.debug(f"Debugger detach failed: {e}")


class ReplaySession:
    """
    Replay wiring for a Playwright page.

    Builds the driver, executor and orchestrator, keeps the checkpoint in
    the page's session storage, and resumes a pending run whenever the
    page finishes loading outside an active run.

    Example:
        >>> session = ReplaySession(page)
        >>> session.install()
        >>> run = await session.replay(recording, speed="slow")
        >>> print(run.to_dict())
    """

    def __init__(
        self,
        page: "Page",
        settings: Optional[Settings] = None,
        checkpoint_store: Optional[CheckpointStore] = None,
    ):
        self.page = page
        self.settings = settings or get_settings()
        replay_settings = self.settings.replay

        self.driver = PlaywrightPageDriver(page, timeout_ms=self.settings.browser.timeout_ms)
        debugger = None
        if replay_settings.use_debugger:
            debugger = CDPDebuggerSession()
            debugger.register_page(page, context_id=self.driver.context_id)
        self.executor = StepExecutor(self.driver, SelectorResolver(), replay_settings, debugger)
        self.checkpoint_store = checkpoint_store or SessionStorageCheckpointStore(
            page, replay_settings.checkpoint_key
        )
        self.orchestrator = ReplayOrchestrator(self.driver, self.executor, self.checkpoint_store, self.settings)
        self._driving = False
        self._installed = False
        self._tasks: set = set()
        self.last_run: Optional[ReplayRun] = None

    def install(self) -> None:
        """Resume pending replays on every page load."""
        if not self._installed:
            self.page.on("load", self._on_load)
            self._installed = True

    def uninstall(self) -> None:
        if self._installed:
            self.page.remove_listener("load", self._on_load)
            self._installed = False

    async def replay(self, recording: Recording, speed: Optional[str] = None) -> ReplayRun:
        """Run a recording to a terminal state, following its navigations."""
        self._driving = True
        try:
            run = await self.orchestrator.run(recording, speed)
            while run.state == RunState.SUSPENDED:
                resumed = await self.orchestrator.resume_pending()
                if resumed is None:
                    if self.orchestrator.stop_requested:
                        run.state = RunState.STOPPED
                    else:
                        logger.warning("Pending replay was lost after navigation")
                    break
                run.absorb(resumed)
        finally:
            self._driving = False
        self.last_run = run
        return run

    async def stop(self) -> None:
        await self.orchestrator.stop()

    def _on_load(self, page: "Page") -> None:
        if self._driving or self.orchestrator.is_running:
            return
        task = asyncio.create_task(self._resume_after_load())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _resume_after_load(self) -> None:
        try:
            run = await self.orchestrator.resume_pending()
        except SessionActiveError:
            return
        if run is not None:
            self.last_run = run
