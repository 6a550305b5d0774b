"""
Tests for response row extraction (urlquery.data.rows) and local post-processing.
"""

from urlquery.core.models import Comparator, Entity, Filter, FilterGroup, LogicalOperator, Sorter, SortDirection
from urlquery.data import local
from urlquery.data.rows import (
    ODataV2RowExtractor,
    ODataV4RowExtractor,
    RowContainer,
    RowContainerKind,
    RowExtractor,
    parse_count,
)


def _entity(**options):
    return Entity.from_dict({"alias": "E", "data_address": "e", "options": options, "attributes": [{"alias": "a"}]})


class TestRowContainer:
    """One normalization step classifies every candidate."""

    def test_mapping_is_single_object(self):
        container = RowContainer.normalize({"a": 1})
        assert container.kind == RowContainerKind.SINGLE_OBJECT
        assert container.as_list() == [{"a": 1}]

    def test_sequence_is_object_list(self):
        assert RowContainer.normalize([{"a": 1}, {"a": 2}]).kind == RowContainerKind.OBJECT_LIST

    def test_digit_keys_are_a_keyed_list(self):
        container = RowContainer.normalize({"0": {"a": 1}, "1": {"a": 2}})
        assert container.kind == RowContainerKind.OBJECT_LIST
        assert len(container) == 2

    def test_empty_values(self):
        for candidate in (None, {}, [], "text"):
            assert RowContainer.normalize(candidate).kind == RowContainerKind.EMPTY


class TestDefaultEnvelopes:
    """Default row locations per dialect."""

    def test_odata_v2_results(self):
        body = {"d": {"results": [{"a": 1}, {"a": 2}]}}
        assert len(ODataV2RowExtractor().extract(body, _entity())) == 2

    def test_odata_v2_single_entity(self):
        container = ODataV2RowExtractor().extract({"d": {"a": 1}}, _entity())
        assert container.kind == RowContainerKind.SINGLE_OBJECT
        assert len(container) == 1

    def test_odata_v4_value(self):
        assert len(ODataV4RowExtractor().extract({"value": [{"a": 1}]}, _entity())) == 1

    def test_odata_v4_single_entity_drops_annotations(self):
        container = ODataV4RowExtractor().extract({"@odata.context": "$metadata#E/$entity", "a": 1}, _entity())
        assert container.as_list() == [{"a": 1}]

    def test_generic_body_without_path(self):
        assert len(RowExtractor().extract([{"a": 1}, {"a": 2}], _entity())) == 2
        assert len(RowExtractor().extract({"a": 1}, _entity())) == 1

    def test_none_body_is_empty(self):
        assert RowExtractor().extract(None, _entity()).kind == RowContainerKind.EMPTY


class TestConfiguredPaths:
    """``response_data_path`` and friends override the defaults."""

    def test_response_data_path(self):
        entity = _entity(response_data_path="data/items")
        body = {"data": {"items": [{"a": 1}, {"a": 2}, {"a": 3}]}}
        assert len(RowExtractor().extract(body, entity)) == 3

    def test_uid_path_only_for_uid_requests(self):
        entity = _entity(response_data_path="items", uid_response_data_path="item")
        body = {"items": [{"a": 1}, {"a": 2}], "item": {"a": 9}}
        assert len(RowExtractor().extract(body, entity, uid_scoped=False)) == 2
        assert RowExtractor().extract(body, entity, uid_scoped=True).as_list() == [{"a": 9}]

    def test_keyed_object_under_path(self):
        entity = _entity(response_data_path="items", uid_response_data_path="items")
        body = {"items": {"x": {"a": 1}, "y": {"a": 2}}}
        container = RowExtractor().extract(body, entity, uid_scoped=False)
        assert container.kind == RowContainerKind.OBJECT_LIST
        assert container.as_list() == [{"a": 1}, {"a": 2}]
        assert RowExtractor().extract(body, entity, uid_scoped=True).as_list() == [body["items"]]

    def test_object_with_scalar_fields_stays_one_row(self):
        entity = _entity(response_data_path="item")
        assert RowExtractor().extract({"item": {"a": 1, "b": {"c": 2}}}, entity).as_list() == [{"a": 1, "b": {"c": 2}}]

    def test_count_paths(self):
        assert ODataV2RowExtractor().count({"d": {"__count": "12"}}, _entity()) == 12
        assert ODataV4RowExtractor().count({"@odata.count": 7, "value": []}, _entity()) == 7
        assert RowExtractor().count({"meta": {"total": 3}}, _entity(response_total_count_path="meta/total")) == 3
        assert RowExtractor().count({"total": 3}, _entity()) is None

    def test_malformed_counter_is_unknown(self):
        assert parse_count("12a") is None
        assert parse_count(True) is None
        assert parse_count(4.0) == 4
        assert parse_count(" 8 ") == 8


class TestLocalProcessing:
    """Filters, sorters and paging applied after reading."""

    rows = [
        {"name": "beta", "qty": "10"},
        {"name": "Alpha", "qty": 2},
        {"name": "gamma", "qty": None},
    ]

    def _attr(self, alias):
        return Entity.from_dict({"alias": "E", "attributes": [{"alias": alias}]}).attribute(alias)

    def test_is_matches_substring_case_insensitive(self):
        f = Filter(self._attr("name"), Comparator.IS, "ALP")
        assert local.apply_filters(self.rows, FilterGroup(filters=(f,))) == [self.rows[1]]

    def test_numeric_comparison(self):
        f = Filter(self._attr("qty"), Comparator.GREATER_THAN, 5)
        assert local.apply_filters(self.rows, FilterGroup(filters=(f,))) == [self.rows[0]]

    def test_xor_group(self):
        a = Filter(self._attr("name"), Comparator.EQUALS, "beta")
        b = Filter(self._attr("qty"), Comparator.EQUALS, 10)
        group = FilterGroup(LogicalOperator.XOR, (a, b))
        assert local.apply_filters(self.rows, group) == []

    def test_sorting_puts_empty_values_first(self):
        s = Sorter(self._attr("qty"), SortDirection.ASC)
        assert [r["name"] for r in local.apply_sorting(self.rows, [s])] == ["gamma", "Alpha", "beta"]

    def test_pagination(self):
        assert local.apply_pagination(list(range(10)), 2, 3) == [2, 3, 4]
        assert local.apply_pagination(list(range(4)), 1, 0) == [1, 2, 3]

    def test_keep_first_group(self):
        rows = [{"k": 1, "v": "a"}, {"k": 2, "v": "b"}, {"k": 1, "v": "c"}]
        assert local.keep_first_group(rows, "k") == [rows[0], rows[2]]
