"""
Tests for StepExecutor.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from qa_recorder.exceptions import AssertionMismatchError, DebuggerError, ElementNotFoundError
from qa_recorder.recorder.steps import (
    ChangeStep,
    ClickStep,
    NavigateStep,
    SetViewportStep,
    WaitForElementStep,
)
from qa_recorder.replay.executor import StepExecutor
from qa_recorder.selectors.models import SelectorSet

BUTTON_PATH = "/html[1]/body[1]/button[1]"
INPUT_PATH = "/html[1]/body[1]/input[1]"


def selectors(*groups):
    return SelectorSet.from_list([list(g) for g in groups])


def attached_debugger():
    debugger = MagicMock()
    debugger.is_attached = MagicMock(return_value=True)
    debugger.dispatch_pointer_press = AsyncMock()
    debugger.dispatch_pointer_release = AsyncMock()
    return debugger


class TestSimpleSteps:
    """Test navigate and viewport steps."""

    @pytest.mark.asyncio
    async def test_navigate(self, fake_driver, settings):
        """Test navigate loads the URL."""
        driver = fake_driver("")
        await StepExecutor(driver, settings=settings.replay).execute(NavigateStep(url="https://b/"))

        assert driver.actions == [("goto", "https://b/")]

    @pytest.mark.asyncio
    async def test_set_viewport(self, fake_driver, settings):
        """Test viewport steps resize the page."""
        driver = fake_driver("")
        await StepExecutor(driver, settings=settings.replay).execute(SetViewportStep(width=390, height=844))

        assert driver.actions == [("viewport", 390, 844)]

    @pytest.mark.asyncio
    async def test_unsupported_step(self, fake_driver, settings):
        """Test unknown objects are rejected."""
        with pytest.raises(TypeError):
            await StepExecutor(fake_driver(""), settings=settings.replay).execute(object())


class TestClick:
    """Test click execution."""

    @pytest.mark.asyncio
    async def test_synthetic_click(self, fake_driver, settings):
        """Test clicks scroll then click when no debugger is attached."""
        driver = fake_driver('<button id="go">Go</button>')
        executor = StepExecutor(driver, settings=settings.replay)

        await executor.execute(ClickStep(selectors=selectors(["#go"])))

        assert driver.actions == [("scroll", BUTTON_PATH), ("click", BUTTON_PATH)]

    @pytest.mark.asyncio
    async def test_click_waits_for_element(self, fake_driver, settings):
        """Test clicks poll until the element appears."""
        driver = fake_driver("<p>loading</p>", '<button id="go">Go</button>')
        executor = StepExecutor(driver, settings=settings.replay)

        await executor.execute(ClickStep(selectors=selectors(["#go"])))

        assert ("click", BUTTON_PATH) in driver.actions

    @pytest.mark.asyncio
    async def test_click_timeout(self, fake_driver, settings):
        """Test a missing element raises after the timeout."""
        executor = StepExecutor(fake_driver("<p>nothing</p>"), settings=settings.replay)

        with pytest.raises(ElementNotFoundError):
            await executor.execute(ClickStep(selectors=selectors(["#go"])))

    @pytest.mark.asyncio
    async def test_debugger_click_at_center(self, fake_driver, settings):
        """Test attached debuggers receive press and release at the box center."""
        driver = fake_driver('<button id="go">Go</button>')
        debugger = attached_debugger()
        executor = StepExecutor(driver, settings=settings.replay, debugger=debugger)

        await executor.execute(ClickStep(selectors=selectors(["#go"])))

        debugger.dispatch_pointer_press.assert_awaited_once_with("page-test", 60, 40)
        debugger.dispatch_pointer_release.assert_awaited_once_with("page-test", 60, 40)
        assert ("click", BUTTON_PATH) not in driver.actions

    @pytest.mark.asyncio
    async def test_debugger_failure_falls_back(self, fake_driver, settings):
        """Test a failed debugger dispatch falls back to a synthetic click."""
        driver = fake_driver('<button id="go">Go</button>')
        debugger = attached_debugger()
        debugger.dispatch_pointer_press = AsyncMock(side_effect=DebuggerError("detached"))
        executor = StepExecutor(driver, settings=settings.replay, debugger=debugger)

        await executor.execute(ClickStep(selectors=selectors(["#go"])))

        assert ("click", BUTTON_PATH) in driver.actions

    @pytest.mark.asyncio
    async def test_release_failure_not_retried(self, fake_driver, settings):
        """Test a release failing after a delivered press raises without a synthetic click."""
        driver = fake_driver('<button id="go">Go</button>')
        debugger = attached_debugger()
        debugger.dispatch_pointer_release = AsyncMock(side_effect=DebuggerError("detached"))
        executor = StepExecutor(driver, settings=settings.replay, debugger=debugger)

        with pytest.raises(DebuggerError):
            await executor.execute(ClickStep(selectors=selectors(["#go"])))

        debugger.dispatch_pointer_press.assert_awaited_once()
        assert ("click", BUTTON_PATH) not in driver.actions


class TestChange:
    """Test change execution."""

    @pytest.mark.asyncio
    async def test_sets_value(self, fake_driver, settings):
        """Test change steps set the value on the resolved element."""
        driver = fake_driver('<input id="q">')
        executor = StepExecutor(driver, settings=settings.replay)

        await executor.execute(ChangeStep(selectors=selectors(["#q"]), value="shoes"))

        assert driver.actions == [("set_value", INPUT_PATH, "shoes")]

    @pytest.mark.asyncio
    async def test_missing_element(self, fake_driver, settings):
        """Test change steps do not wait for missing elements."""
        driver = fake_driver("<p>x</p>")
        executor = StepExecutor(driver, settings=settings.replay)

        with pytest.raises(ElementNotFoundError):
            await executor.execute(ChangeStep(selectors=selectors(["#q"]), value="shoes"))
        assert driver.snapshots_taken == 1


class TestWaitForElement:
    """Test element checks."""

    @pytest.mark.asyncio
    async def test_presence_only(self, fake_driver, settings):
        """Test a check without expectations only needs the element."""
        executor = StepExecutor(fake_driver('<h1 id="t">Hi</h1>'), settings=settings.replay)

        await executor.execute(WaitForElementStep(selectors=selectors(["#t"])))

    @pytest.mark.asyncio
    async def test_text_is_trimmed(self, fake_driver, settings):
        """Test text comparison ignores surrounding whitespace."""
        driver = fake_driver('<h1 id="t">Hi</h1>')
        driver.texts["/html[1]/body[1]/h1[1]"] = "  Welcome \n"
        executor = StepExecutor(driver, settings=settings.replay)

        await executor.execute(WaitForElementStep(selectors=selectors(["#t"]), text="Welcome "))

    @pytest.mark.asyncio
    async def test_text_mismatch(self, fake_driver, settings):
        """Test differing text raises AssertionMismatchError."""
        driver = fake_driver('<h1 id="t">Hi</h1>')
        driver.texts["/html[1]/body[1]/h1[1]"] = "Goodbye"
        executor = StepExecutor(driver, settings=settings.replay)

        with pytest.raises(AssertionMismatchError) as exc_info:
            await executor.execute(WaitForElementStep(selectors=selectors(["#t"]), text="Welcome"))

        assert exc_info.value.field == "text"
        assert exc_info.value.actual == "Goodbye"

    @pytest.mark.asyncio
    async def test_value_is_exact(self, fake_driver, settings):
        """Test values are compared without trimming."""
        driver = fake_driver('<input id="q">')
        driver.values[INPUT_PATH] = "shoes "
        executor = StepExecutor(driver, settings=settings.replay)

        with pytest.raises(AssertionMismatchError) as exc_info:
            await executor.execute(WaitForElementStep(selectors=selectors(["#q"]), value="shoes"))

        assert exc_info.value.field == "value"

    @pytest.mark.asyncio
    async def test_uses_step_timeout(self, fake_driver, settings):
        """Test the step's own timeout bounds the wait."""
        executor = StepExecutor(fake_driver("<p>x</p>"), settings=settings.replay)

        with pytest.raises(ElementNotFoundError) as exc_info:
            await executor.execute(WaitForElementStep(selectors=selectors(["#t"]), timeout=50))

        assert exc_info.value.timeout_ms == 50
