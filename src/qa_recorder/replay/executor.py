"""
Step Executor - Perform one recorded step against the page.
"""

import asyncio
import logging
from typing import Optional

from qa_recorder.config import ReplaySettings
from qa_recorder.debugger.session import DebuggerSession
from qa_recorder.dom.snapshot import live_path
from qa_recorder.exceptions import (
    AssertionMismatchError,
    DebuggerError,
    ElementNotFoundError,
)
from qa_recorder.recorder.steps import (
    ChangeStep,
    ClickStep,
    NavigateStep,
    SetViewportStep,
    Step,
    WaitForElementStep,
)
from qa_recorder.replay.driver import PageDriver
from qa_recorder.selectors.resolver import SelectorResolver

logger = logging.getLogger(__name__)


class StepExecutor:
    """
    Execute steps through a PageDriver.

    Clicks go through the debugger session when one is attached so the
    page sees trusted input; otherwise a synthetic DOM click is used.

    Example:
        >>> executor = StepExecutor(driver, SelectorResolver(), settings.replay)
        >>> await executor.execute(step)
    """

    def __init__(
        self,
        driver: PageDriver,
        resolver: Optional[SelectorResolver] = None,
        settings: Optional[ReplaySettings] = None,
        debugger: Optional[DebuggerSession] = None,
    ):
        self.driver = driver
        self.resolver = resolver or SelectorResolver()
        self.settings = settings or ReplaySettings()
        self.debugger = debugger

    @property
    def debugger_attached(self) -> bool:
        return self.debugger is not None and self.debugger.is_attached(self.driver.context_id)

    async def execute(self, step: Step) -> None:
        """
        Execute a single step.

        Raises:
            ElementNotFoundError: If the target element never appears
            AssertionMismatchError: If a WaitForElement expectation fails
            NavigationTimeoutError: If a navigation does not complete
            DebuggerError: If the pointer release fails after a delivered press
        """
        if isinstance(step, NavigateStep):
            await self.driver.goto(step.url)
        elif isinstance(step, SetViewportStep):
            await self.driver.set_viewport(step.width, step.height)
        elif isinstance(step, ClickStep):
            await self._click(step)
        elif isinstance(step, ChangeStep):
            await self._change(step)
        elif isinstance(step, WaitForElementStep):
            await self._wait_for_element(step)
        else:
            raise TypeError(f"Unsupported step: {type(step).__name__}")

    async def _click(self, step: ClickStep) -> None:
        element = await self.resolver.wait_for(
            self.driver.snapshot,
            step.selectors,
            self.settings.timeout_ms,
            self.settings.poll_interval_ms,
        )
        path = live_path(element)
        await self.driver.scroll_into_view(path)
        await asyncio.sleep(self.settings.settle_ms / 1000)

        if self.debugger_attached:
            box = await self.driver.bounding_box(path)
            if box is None:
                raise ElementNotFoundError("Element has no layout box", selectors=step.selectors.to_list())
            x, y = box.center
            context_id = self.driver.context_id
            try:
                await self.debugger.dispatch_pointer_press(context_id, x, y)
            except DebuggerError as e:
                logger.warning(f"Debugger click failed, using synthetic click: {e}")
            else:
                # Press delivered: no synthetic fallback past this point
                await self.debugger.dispatch_pointer_release(context_id, x, y)
                return

        await self.driver.click(path)

    async def _change(self, step: ChangeStep) -> None:
        snapshot = await self.driver.snapshot()
        element = self.resolver.resolve_or_raise(snapshot, step.selectors)
        await self.driver.set_value(live_path(element), step.value)

    async def _wait_for_element(self, step: WaitForElementStep) -> None:
        element = await self.resolver.wait_for(
            self.driver.snapshot,
            step.selectors,
            step.timeout,
            self.settings.poll_interval_ms,
        )
        path = live_path(element)

        if step.value is not None:
            actual = await self.driver.read_value(path)
            if actual != step.value:
                raise AssertionMismatchError(
                    f"Expected value '{step.value}' but found '{actual}'",
                    expected=step.value,
                    actual=actual,
                    field="value",
                )

        if step.text is not None:
            expected = step.text.strip()
            actual_text = (await self.driver.read_text(path)).strip()
            if actual_text != expected:
                raise AssertionMismatchError(
                    f"Expected text '{expected}' but found '{actual_text}'",
                    expected=expected,
                    actual=actual_text,
                    field="text",
                )
