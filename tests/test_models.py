from datetime import datetime

import pytest
from pydantic import ValidationError

from selextract import ExtractionResult, FieldRule, SelectorMap


LISTING = """
<ul>
  <li class="person" data-id="p1">
    <a href="/people/ada">Ada Lovelace</a>
    <span class="age">36</span>
    <span class="born">1815-12-10</span>
    <span class="skill">math</span><span class="skill">poetry</span>
  </li>
  <li class="person" data-id="p2">
    <a href="/people/alan">Alan Turing</a>
    <span class="age">unknown</span>
    <span class="skill">logic</span>
  </li>
</ul>
<a class="next" href="?page=2">Next</a>
"""


class TestSelectorMap:

    def test_string_shorthand_becomes_text_rule(self):
        selector_map = SelectorMap(fields={"name": "a"})
        assert selector_map.fields["name"] == FieldRule(selector="a", kind="text")

    def test_requires_fields(self):
        with pytest.raises(ValidationError):
            SelectorMap(fields={})

    def test_rejects_empty_selector(self):
        with pytest.raises(ValidationError):
            SelectorMap(fields={"name": "  "})

    def test_rejects_unknown_kind(self):
        with pytest.raises(ValidationError):
            SelectorMap(fields={"name": {"selector": "a", "kind": "xml"}})

    def test_page_parser_with_item_selector(self):
        selector_map = SelectorMap.model_validate({
            "item_selector": "li.person",
            "pagination_selector": "a.next",
            "fields": {
                "name": "a",
                "url": {"selector": "a", "attr": "href", "absolute": True},
                "age": {"selector": ".age", "kind": "int"},
                "born": {"selector": ".born", "kind": "date"},
                "skills": {"selector": ".skill", "kind": "list"},
            },
        })
        page = selector_map.page_parser().parse_html(LISTING, "https://example.com/people/")

        assert page["next_page"] == "https://example.com/people/?page=2"
        assert page["records"] == [
            {
                "name": "Ada Lovelace",
                "url": "https://example.com/people/ada",
                "age": 36,
                "born": datetime(1815, 12, 10),
                "skills": ["math", "poetry"],
            },
            {
                "name": "Alan Turing",
                "url": "https://example.com/people/alan",
                "age": 0,
                "born": datetime(1970, 1, 1),
                "skills": ["logic"],
            },
        ]

    def test_page_parser_without_item_selector(self):
        selector_map = SelectorMap(fields={
            "first": "a",
            "ids": {"selector": "li.person", "kind": "map", "key_attr": "data-id", "attr": "data-id"},
        })
        page = selector_map.page_parser().parse_html(LISTING)
        assert page["next_page"] == ""
        assert page["records"] == [{"first": "Ada Lovelace", "ids": {"p1": "p1", "p2": "p2"}}]

    def test_next_page_skips_links_without_href(self):
        html = (
            '<span class="next disabled">Next</span>'
            '<a class="next">Next</a>'
            '<a class="next" href="?page=3">Next</a>'
        )
        page = SelectorMap(fields={"name": "a"}, pagination_selector=".next").page_parser()
        assert page.parse_html(html, "https://example.com/list")["next_page"] == "https://example.com/list?page=3"

    def test_next_page_empty_when_no_candidate_has_href(self):
        page = SelectorMap(fields={"name": "a"}, pagination_selector="a.missing").page_parser()
        assert page.parse_html(LISTING)["next_page"] == ""

    def test_map_rule_defaults_to_text(self):
        rule = FieldRule(selector="li.person", kind="map", key_attr="data-id")
        parser = SelectorMap(fields={"people": rule}).record_parser()
        people = parser.parse_html(LISTING)["people"]
        assert list(people) == ["p1", "p2"]
        assert people["p2"].startswith("Alan Turing")


class TestExtractionResult:

    def test_as_dicts_copies_records(self):
        selector_map = SelectorMap(fields={"name": "a"})
        result = ExtractionResult(
            url="https://example.com",
            records=[{"name": "a"}],
            total_count=1,
            selector_map=selector_map,
        )
        dicts = result.as_dicts
        dicts[0]["name"] = "changed"
        assert result.records[0]["name"] == "a"
        assert result.pages == 1


class TestFieldRule:

    def test_absolute_without_attr_resolves_href(self):
        parser = SelectorMap(fields={"url": {"selector": "a", "absolute": True}}).record_parser()
        assert parser.parse_html(LISTING, "https://example.com/")["url"] == "https://example.com/people/ada"

    def test_attr_without_absolute_stays_relative(self):
        parser = SelectorMap(fields={"url": {"selector": "a", "attr": "href"}}).record_parser()
        assert parser.parse_html(LISTING, "https://example.com/")["url"] == "/people/ada"
