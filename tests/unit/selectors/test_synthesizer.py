"""
Tests for SelectorSynthesizer - element to selector set.
"""

import pytest

from qa_recorder.selectors.synthesizer import SelectorSynthesizer, xpath_literal


def first(snapshot, xpath):
    return snapshot.root.xpath(xpath)[0]


@pytest.fixture
def synthesizer():
    return SelectorSynthesizer()


class TestXPathLiteral:
    """Test string quoting for XPath expressions."""

    def test_plain_string(self):
        """Test strings without single quotes use single quotes."""
        assert xpath_literal("save") == "'save'"

    def test_single_quote(self):
        """Test strings with a single quote switch to double quotes."""
        assert xpath_literal("it's") == '"it\'s"'

    def test_both_quotes(self):
        """Test strings with both quote kinds use concat()."""
        assert xpath_literal("it's \"x\"") == "concat('it', \"'\", 's \"x\"')"


class TestCSSSelectors:
    """Test CSS selector synthesis."""

    def test_id_selector(self, synthesizer, make_snapshot):
        """Test identifier-safe ids become #id."""
        snapshot = make_snapshot('<button id="save">Save</button>')
        result = synthesizer.synthesize(first(snapshot, "//button"), ["css"])

        assert result.to_list() == [["#save"]]

    def test_unsafe_id_uses_attribute_form(self, synthesizer, make_snapshot):
        """Test ids that are not CSS identifiers use an attribute selector."""
        snapshot = make_snapshot('<button id="1st">Save</button>')
        result = synthesizer.synthesize(first(snapshot, "//button"), ["css"])

        assert result.to_list() == [["[id='1st']"]]

    def test_test_id_selector(self, synthesizer, make_snapshot):
        """Test elements with a test identifier use it."""
        snapshot = make_snapshot('<button data-testid="submit">Go</button>')
        result = synthesizer.synthesize(first(snapshot, "//button"), ["css"])

        assert result.to_list() == [["[data-testid='submit']"]]

    def test_path_with_classes_and_nth_of_type(self, synthesizer, make_snapshot):
        """Test path fallback includes classes and nth-of-type for repeated tags."""
        snapshot = make_snapshot('<ul class="menu"><li>a</li><li class="item x:y">b</li></ul>')
        result = synthesizer.synthesize(first(snapshot, "//li[2]"), ["css"])

        assert result.to_list() == [["html > body > ul.menu > li.item:nth-of-type(2)"]]

    def test_pierce_mirrors_css(self, synthesizer, make_snapshot):
        """Test pierce selectors carry the CSS computation."""
        snapshot = make_snapshot('<button id="save">Save</button>')
        result = synthesizer.synthesize(first(snapshot, "//button"), ["pierce"])

        assert result.to_list() == [["pierce/#save"]]


class TestXPathRules:
    """Test the ordered XPath rules."""

    def test_literal_id(self, synthesizer, make_snapshot):
        """Test an element id produces the id XPath."""
        snapshot = make_snapshot('<div data-testid="x"><button id="save">Save</button></div>')
        result = synthesizer.synthesize(first(snapshot, "//button"), ["xpath"])

        assert result.to_list() == [["xpath//*[@id='save']"]]

    def test_id_with_both_quotes(self, synthesizer, make_snapshot):
        """Test ids with both quote kinds are quoted with concat()."""
        snapshot = make_snapshot("<button id=\"a'b&quot;c\">Save</button>")
        expression = synthesizer.xpath_expression(first(snapshot, "//button"))

        assert expression == "//*[@id=concat('a', \"'\", 'b\"c')]"

    def test_labelled_input(self, synthesizer, make_snapshot):
        """Test inputs with a preceding label use the label text."""
        snapshot = make_snapshot('<div><label>Email *</label><input data-testid="email"></div>')
        expression = synthesizer.xpath_expression(first(snapshot, "//input"))

        assert expression == (
            "//label[normalize-space(.)='Email' or normalize-space(.)='Email*' "
            "or normalize-space(.)='Email *']/following-sibling::*[@data-testid='email']"
        )

    def test_text_div(self, synthesizer, make_snapshot):
        """Test identified divs with direct text use a text predicate."""
        snapshot = make_snapshot('<div data-testid="card">Hello <b>there</b></div>')
        expression = synthesizer.xpath_expression(first(snapshot, "//div"))

        assert expression == "//div[@data-testid='card' and .//text()[normalize-space()='Hello']]"

    def test_text_div_change_omits_text(self, synthesizer, make_snapshot):
        """Test change capture drops the text predicate."""
        snapshot = make_snapshot('<div data-testid="card">Hello</div>')
        expression = synthesizer.xpath_expression(first(snapshot, "//div"), event_type="change")

        assert expression == "//div[@data-testid='card']"

    def test_text_div_skipped_after_label(self, synthesizer, make_snapshot):
        """Test a div right after a label falls through to later rules."""
        snapshot = make_snapshot('<label>Name</label><div data-testid="name">Bob</div>')
        expression = synthesizer.xpath_expression(first(snapshot, "//div"))

        assert expression == "//div[@data-testid='name' and .//text()[normalize-space()='Bob']]"

    def test_checkbox_in_list_item(self, synthesizer, make_snapshot):
        """Test a checkbox is located through its list item's text."""
        snapshot = make_snapshot('<ul><li><input type="checkbox" data-testid="cb">Buy milk</li></ul>')
        expression = synthesizer.xpath_expression(first(snapshot, "//input"))

        assert expression == "//li[.//text()[normalize-space()='Buy milk']]//*[@data-testid='cb']"

    def test_radio_in_identified_list_item(self, synthesizer, make_snapshot):
        """Test radios add a type predicate and list item identifiers are kept."""
        snapshot = make_snapshot(
            '<ul><li data-testid="row"><input type="radio" data-testid="opt"><span>Express</span></li></ul>'
        )
        expression = synthesizer.xpath_expression(first(snapshot, "//span"))

        assert expression == (
            "//li[@data-testid='row' and .//text()[normalize-space()='Express']]"
            "//*[@data-testid='opt' and @type='radio']"
        )

    def test_icon_inside_identified_button(self, synthesizer, make_snapshot):
        """Test nodes inside an svg anchor on the nearest identified ancestor."""
        snapshot = make_snapshot(
            '<button data-testid="close"><svg data-testid="icon-x"><path d="M0"></path></svg></button>'
        )
        expression = synthesizer.xpath_expression(first(snapshot, "//path"))

        assert expression == (
            "//button[@data-testid='close' and .//*[local-name()='svg' and @data-testid='icon-x']]"
        )

    def test_identified_ancestor_with_text(self, synthesizer, make_snapshot):
        """Test the nearest identified ancestor with readable text is used."""
        snapshot = make_snapshot('<section data-testid="menu"><span>Settings</span></section>')
        expression = synthesizer.xpath_expression(first(snapshot, "//span"))

        assert expression == "//section[@data-testid='menu' and .//text()[normalize-space()='Settings']]"

    def test_identified_ancestor_through_outer_identifier(self, synthesizer, make_snapshot):
        """Test text-less identified elements are qualified by an outer identifier."""
        snapshot = make_snapshot('<form data-testid="login"><button data-testid="go"></button></form>')
        expression = synthesizer.xpath_expression(first(snapshot, "//button"))

        assert expression == "//form[@data-testid='login']//button[@data-testid='go']"

    def test_positional_fallback(self, synthesizer, make_snapshot):
        """Test elements without identifiers get a positional path."""
        snapshot = make_snapshot("<div><p>a</p><p>b</p></div>")
        expression = synthesizer.xpath_expression(first(snapshot, "//p[2]"))

        assert expression == "//html[1]/body[1]/div[1]/p[2]"

    def test_positional_path_is_capped(self, make_snapshot):
        """Test positional paths keep at most max_path_depth segments."""
        synthesizer = SelectorSynthesizer(max_path_depth=2)
        snapshot = make_snapshot("<div><section><p>a</p></section></div>")
        expression = synthesizer.xpath_expression(first(snapshot, "//p"))

        assert expression == "//section[1]/p[1]"


class TestOtherSchemes:
    """Test ARIA and text synthesis and scheme ordering."""

    def test_aria_role(self, synthesizer, make_snapshot):
        """Test elements with a role use the role query."""
        snapshot = make_snapshot('<div role="button" aria-label="Close">x</div>')
        result = synthesizer.synthesize(first(snapshot, "//div"), ["aria"])

        assert result.to_list() == [['aria/[role="button"]']]

    def test_aria_label(self, synthesizer, make_snapshot):
        """Test aria-label is used when there is no role."""
        snapshot = make_snapshot('<a aria-label="Home" href="/">H</a>')
        result = synthesizer.synthesize(first(snapshot, "//a"), ["aria"])

        assert result.to_list() == [["aria/Home"]]

    def test_aria_omitted_without_label(self, synthesizer, make_snapshot):
        """Test the aria scheme is omitted when nothing stable exists."""
        snapshot = make_snapshot("<span>plain</span>")
        result = synthesizer.synthesize(first(snapshot, "//span"), ["aria"])

        assert len(result) == 0

    def test_text_selector(self, synthesizer, make_snapshot):
        """Test short text produces a text selector."""
        snapshot = make_snapshot("<button>  Sign   in </button>")
        result = synthesizer.synthesize(first(snapshot, "//button"), ["text"])

        assert result.to_list() == [["text/Sign in"]]

    def test_long_text_omitted(self, synthesizer, make_snapshot):
        """Test text of 50 characters or more is not used."""
        snapshot = make_snapshot(f"<button>{'x' * 50}</button>")
        result = synthesizer.synthesize(first(snapshot, "//button"), ["text"])

        assert len(result) == 0

    def test_groups_follow_caller_order(self, synthesizer, make_snapshot):
        """Test one group per scheme in the order requested."""
        snapshot = make_snapshot('<button id="save">Save</button>')
        result = synthesizer.synthesize(first(snapshot, "//button"), ["xpath", "text", "css", "xpath"])

        assert result.to_list() == [["xpath//*[@id='save']"], ["text/Save"], ["#save"]]
