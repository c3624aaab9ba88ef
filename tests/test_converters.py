import dataclasses
import logging
from collections import OrderedDict

import pytest
from selectolax.parser import HTMLParser

from selextract.coerce import node_text
from selextract.converters import (
    CollectionConverter,
    MapConverter,
    NestedParserConverter,
    SelectorConverter,
    WholeSelectionConverter,
    field_merger,
    field_setter,
    merge,
)
from selextract.parser import NestedParser
from tests.conftest import PROFILE_HTML


@pytest.fixture
def tree():
    return HTMLParser(PROFILE_HTML)


def recorder():
    calls = []

    def action(value, instance):
        calls.append(value)

    return calls, action


class TestSelectorConverter:

    def test_first_only_passes_first_match(self, tree):
        calls, action = recorder()
        SelectorConverter(".repo .name", action).convert(tree, {})
        assert [node_text(n) for n in calls] == ["ksoup"]

    def test_first_only_fires_with_none_on_no_match(self, tree):
        calls, action = recorder()
        SelectorConverter(".does-not-exist", action).convert(tree, {})
        assert calls == [None]

    def test_all_fires_per_match_in_document_order(self, tree):
        calls, action = recorder()
        SelectorConverter(".repo .name", action, first_only=False).convert(tree, {})
        assert [node_text(n) for n in calls] == ["ksoup", "retrofit", "scraper"]

    def test_all_without_matches_never_fires(self, tree):
        calls, action = recorder()
        SelectorConverter(".does-not-exist", action, first_only=False).convert(tree, {})
        assert calls == []

    def test_empty_selector_logs_and_passes_none(self, tree, caplog):
        calls, action = recorder()
        with caplog.at_level(logging.WARNING, logger="selextract.converters"):
            SelectorConverter("", action).convert(tree, {})
        assert calls == [None]
        assert "empty selector" in caplog.text

    def test_empty_selector_with_all_policy_never_fires(self, tree):
        calls, action = recorder()
        SelectorConverter("", action, first_only=False).convert(tree, {})
        assert calls == []

    @pytest.mark.parametrize("first_only", [True, False])
    def test_invalid_selector_raises(self, tree, first_only):
        calls, action = recorder()
        with pytest.raises(ValueError):
            SelectorConverter("[[", action, first_only=first_only).convert(tree, {})
        assert calls == []

    def test_is_immutable(self):
        converter = SelectorConverter(".a", lambda v, i: None)
        with pytest.raises(dataclasses.FrozenInstanceError):
            converter.css = ".b"


class TestAggregateConverters:

    def test_whole_selection_is_one_call(self, tree):
        calls, action = recorder()
        WholeSelectionConverter("li.tag", action).convert(tree, {})
        assert len(calls) == 1
        assert [node_text(n) for n in calls[0]] == ["html", "css"]

    def test_whole_selection_without_matches_gets_empty_list(self, tree):
        calls, action = recorder()
        WholeSelectionConverter(".nothing", action).convert(tree, {})
        assert calls == [[]]

    def test_collection_transforms_each_match(self, tree):
        calls, action = recorder()
        CollectionConverter("li.topic", lambda n: node_text(n).upper(), action).convert(tree, {})
        assert calls == [["PARSING", "SCRAPING", "DSL"]]

    def test_map_last_write_wins(self, tree):
        calls, action = recorder()
        MapConverter(
            "li.repo",
            lambda n: n.attributes.get("data-lang"),
            lambda n: node_text(n.css_first(".name")),
            action,
        ).convert(tree, {})
        assert calls == [{"python": "scraper", "kotlin": "retrofit"}]

    def test_map_without_matches_gets_empty_dict(self, tree):
        calls, action = recorder()
        MapConverter(".nothing", node_text, node_text, action).convert(tree, {})
        assert calls == [{}]


class TestNestedParserConverter:

    def test_same_instance_nested_parser(self, tree):
        nested = NestedParser()
        nested.text(".p-nickname", "username")
        record = {}
        NestedParserConverter(".vcard", nested).convert(tree, record)
        assert record == {"username": "jdoe"}

    def test_no_match_does_nothing(self, tree):
        nested = NestedParser()
        nested.int(".stars", "stars")
        record = {}
        NestedParserConverter(".nothing", nested).convert(tree, record)
        assert record == {}

    def test_each_match_parsed_into_fresh_result(self, tree, repo_parser):
        calls, action = recorder()
        NestedParserConverter("li.repo", repo_parser, action, first_only=False).convert(tree, {})
        assert [(r.name, r.stars) for r in calls] == [("ksoup", 12), ("retrofit", 7), ("scraper", 0)]
        assert len({id(r) for r in calls}) == 3


class TestMerge:

    def test_list_extends(self):
        values = ["a"]
        merge(values, ["b", "c"])
        assert values == ["a", "b", "c"]

    def test_dict_updates(self):
        values = OrderedDict(a=1)
        merge(values, {"a": 2, "b": 3})
        assert values == {"a": 2, "b": 3}

    def test_set_unions(self):
        values = {"a"}
        merge(values, ["a", "b"])
        assert values == {"a", "b"}

    def test_rejects_immutable_containers(self):
        with pytest.raises(TypeError):
            merge(("a",), ["b"])

    def test_field_helpers_support_dicts_and_objects(self):
        class Target:
            tags = None

        record = {}
        field_setter("name")("x", record)
        field_merger("tags")(["a"], record)
        field_merger("tags")(["b"], record)
        assert record == {"name": "x", "tags": ["a", "b"]}

        target = Target()
        field_merger("tags")({"k": "v"}, target)
        assert target.tags == {"k": "v"}
