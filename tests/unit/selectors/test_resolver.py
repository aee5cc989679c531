"""
Tests for SelectorResolver - selector set to element.
"""

import pytest

from qa_recorder.dom.snapshot import tag_of
from qa_recorder.exceptions import ElementNotFoundError
from qa_recorder.selectors.models import SelectorSet
from qa_recorder.selectors.resolver import SelectorResolver
from qa_recorder.selectors.synthesizer import SelectorSynthesizer


@pytest.fixture
def resolver():
    return SelectorResolver()


class TestResolutionOrder:
    """Test the fixed scheme priority."""

    def test_xpath_before_css(self, resolver, make_snapshot):
        """Test XPath wins even when CSS is listed first."""
        snapshot = make_snapshot('<button id="a">A</button><button id="b">B</button>')
        selector_set = SelectorSet.from_list([["#a"], ["xpath//*[@id='b']"]])

        element = resolver.resolve(snapshot, selector_set)

        assert element.get("id") == "b"

    def test_aria_before_text(self, resolver, make_snapshot):
        """Test ARIA is tried before text."""
        snapshot = make_snapshot('<button>Close</button><button aria-label="Dismiss">x</button>')
        selector_set = SelectorSet.from_list([["text/Close"], ["aria/Dismiss"]])

        element = resolver.resolve(snapshot, selector_set)

        assert element.get("aria-label") == "Dismiss"

    def test_falls_through_to_next_scheme(self, resolver, make_snapshot):
        """Test a missing XPath target falls back to CSS."""
        snapshot = make_snapshot('<button class="go">Go</button>')
        selector_set = SelectorSet.from_list([["xpath//*[@id='missing']"], ["button.go"]])

        element = resolver.resolve(snapshot, selector_set)

        assert tag_of(element) == "button"

    def test_only_primary_selector_is_tried(self, resolver, make_snapshot):
        """Test alternates after a group's first selector are not consulted."""
        snapshot = make_snapshot('<button id="a">A</button>')
        selector_set = SelectorSet.from_list([["#missing", "#a"]])

        assert resolver.resolve(snapshot, selector_set) is None

    def test_no_match_returns_none(self, resolver, make_snapshot):
        """Test resolve returns None when nothing matches."""
        snapshot = make_snapshot("<p>hello</p>")
        selector_set = SelectorSet.from_list([["#nope"], ["text/hello"]])

        assert resolver.resolve(snapshot, selector_set) is None

    def test_resolve_or_raise(self, resolver, make_snapshot):
        """Test resolve_or_raise carries the selectors it tried."""
        snapshot = make_snapshot("<p>hello</p>")
        selector_set = SelectorSet.from_list([["#nope"]])

        with pytest.raises(ElementNotFoundError) as exc_info:
            resolver.resolve_or_raise(snapshot, selector_set)

        assert exc_info.value.selectors == [["#nope"]]


class TestStrategies:
    """Test individual scheme strategies."""

    def test_malformed_xpath_is_a_miss(self, resolver, make_snapshot):
        """Test invalid XPath does not raise."""
        snapshot = make_snapshot('<button id="a">A</button>')
        selector_set = SelectorSet.from_list([["xpath//*[@id="], ["#a"]])

        assert resolver.resolve(snapshot, selector_set).get("id") == "a"

    def test_malformed_css_is_a_miss(self, resolver, make_snapshot):
        """Test invalid CSS does not raise."""
        snapshot = make_snapshot('<button id="a">A</button>')
        selector_set = SelectorSet.from_list([["button[[["]])

        assert resolver.resolve(snapshot, selector_set) is None

    def test_xpath_text_result_is_ignored(self, resolver, make_snapshot):
        """Test XPath results that are not elements do not match."""
        snapshot = make_snapshot("<p>hello</p>")
        selector_set = SelectorSet.from_list([["xpath//p/text()"]])

        assert resolver.resolve(snapshot, selector_set) is None

    def test_pierce_uses_css(self, resolver, make_snapshot):
        """Test pierce selectors resolve like CSS."""
        snapshot = make_snapshot('<div class="panel"><span>x</span></div>')
        selector_set = SelectorSet.from_list([["pierce/div.panel > span"]])

        assert tag_of(resolver.resolve(snapshot, selector_set)) == "span"

    def test_aria_role(self, resolver, make_snapshot):
        """Test role queries match the role attribute."""
        snapshot = make_snapshot('<div role="dialog">d</div><div role="button">b</div>')
        selector_set = SelectorSet.from_list([['aria/[role="button"]']])

        assert resolver.resolve(snapshot, selector_set).text == "b"

    def test_text_matches_interactive_only(self, resolver, make_snapshot):
        """Test text selectors skip non-interactive elements."""
        snapshot = make_snapshot("<p>Submit</p><a href='/x'>Submit</a>")
        selector_set = SelectorSet.from_list([["text/Submit"]])

        assert tag_of(resolver.resolve(snapshot, selector_set)) == "a"

    def test_text_matches_role_button(self, resolver, make_snapshot):
        """Test elements with role=button count as interactive."""
        snapshot = make_snapshot('<div role="button">  Open   menu </div>')
        selector_set = SelectorSet.from_list([["text/Open menu"]])

        assert tag_of(resolver.resolve(snapshot, selector_set)) == "div"

    def test_text_matches_input_label(self, resolver, make_snapshot):
        """Test form fields match through their label."""
        snapshot = make_snapshot('<label for="q">Search</label><input id="q">')
        selector_set = SelectorSet.from_list([["text/Search"]])

        assert tag_of(resolver.resolve(snapshot, selector_set)) == "input"

    def test_text_matches_input_value(self, resolver, make_snapshot):
        """Test form fields match through their value."""
        snapshot = make_snapshot('<input type="submit" value="Send">')
        selector_set = SelectorSet.from_list([["text/Send"]])

        assert tag_of(resolver.resolve(snapshot, selector_set)) == "input"


class TestRoundTrip:
    """Test synthesized selectors resolve back to their element."""

    @pytest.mark.parametrize("body,target", [
        ('<button id="save">Save</button>', "//button"),
        ('<div><label>Email</label><input data-testid="email"></div>', "//input"),
        ('<ul><li><input type="checkbox" data-testid="cb">Buy milk</li></ul>', "//input"),
        ("<div><p>a</p><p>b</p></div>", "//p[2]"),
    ])
    def test_synthesized_set_resolves(self, resolver, make_snapshot, body, target):
        """Test resolving a synthesized set finds the same element."""
        snapshot = make_snapshot(body)
        element = snapshot.root.xpath(target)[0]
        selector_set = SelectorSynthesizer().synthesize(element, ["xpath", "css"])

        assert resolver.resolve(snapshot, selector_set) is element


class TestWaitFor:
    """Test polling resolution."""

    @pytest.mark.asyncio
    async def test_element_appears_later(self, resolver, fake_driver):
        """Test wait_for keeps polling until the element exists."""
        driver = fake_driver("<p>loading</p>", "<p>loading</p>", '<button id="ok">OK</button>')
        selector_set = SelectorSet.from_list([["#ok"]])

        element = await resolver.wait_for(driver.snapshot, selector_set, timeout_ms=2000, poll_interval_ms=1)

        assert element.get("id") == "ok"
        assert driver.snapshots_taken == 3

    @pytest.mark.asyncio
    async def test_timeout(self, resolver, fake_driver):
        """Test wait_for raises after the timeout."""
        driver = fake_driver("<p>never</p>")
        selector_set = SelectorSet.from_list([["#ok"]])

        with pytest.raises(ElementNotFoundError) as exc_info:
            await resolver.wait_for(driver.snapshot, selector_set, timeout_ms=30, poll_interval_ms=5)

        assert exc_info.value.timeout_ms == 30
        assert driver.snapshots_taken >= 2
