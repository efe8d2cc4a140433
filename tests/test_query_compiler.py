"""
쿼리 컴파일러 테스트
- 필터 트리 구성
- 정렬 / 셔플
- 페이지네이션
"""

import asyncio
import logging

import pytest
from pydantic import ValidationError

from search.es_client import Index, SearchPage, SearchHit
from search.filters import Condition, GroupType, Grouping, Operation, SortSpec, ValueType
from search.query_compiler import (
    SORT_TYPES,
    QueryCompiler,
    QueryOptions,
    compile_filter,
    resolve_pagination,
    resolve_sort,
)


def membership(label_id):
    return Condition(Operation.CONTAINS, "labels", ValueType.ARRAY, label_id)


class TestCompileFilter:
    """QueryOptions → 필터 트리"""

    def test_no_options_gives_empty_root(self):
        root = compile_filter(QueryOptions())
        assert root.type == GroupType.AND
        assert root.children == []
        assert root.is_empty

    def test_favorite_only(self):
        root = compile_filter(QueryOptions(favorite=True))
        assert root.type == GroupType.AND
        assert root.children == [
            Condition(Operation.EQ, "favorite", ValueType.BOOLEAN, True),
        ]

    def test_bookmark_only(self):
        root = compile_filter(QueryOptions(bookmark=True))
        assert root.children == [
            Condition(Operation.GT, "bookmark", ValueType.NUMBER, 0),
        ]

    def test_include_and_exclude(self):
        root = compile_filter(QueryOptions(include=["A", "B"], exclude=["C"]))

        assert len(root.children) == 2
        include, exclude = root.children

        assert isinstance(include, Grouping)
        assert include.type == GroupType.AND
        assert include.children == [membership("A"), membership("B")]

        assert isinstance(exclude, Grouping)
        assert exclude.type == GroupType.NOT
        assert exclude.children == [membership("C")]

    def test_each_excluded_label_gets_own_not(self):
        root = compile_filter(QueryOptions(exclude=["C", "D"]))
        assert [child.type for child in root.children] == [GroupType.NOT, GroupType.NOT]
        assert [child.children for child in root.children] == [[membership("C")], [membership("D")]]

    def test_child_order(self):
        root = compile_filter(QueryOptions(
            favorite=True, bookmark=True, include=["A"], exclude=["C"],
        ))
        assert root.children[0].property == "favorite"
        assert root.children[1].property == "bookmark"
        assert root.children[2].type == GroupType.AND
        assert root.children[3].type == GroupType.NOT

    def test_free_text_not_in_filter(self):
        root = compile_filter(QueryOptions(query="acme"))
        assert root.is_empty

    def test_to_dict(self):
        root = compile_filter(QueryOptions(favorite=True, exclude=["C"]))
        assert root.to_dict() == {
            "type": "AND",
            "children": [
                {"condition": {"operation": "=", "property": "favorite", "type": "boolean", "value": True}},
                {"type": "NOT", "children": [
                    {"condition": {"operation": "?", "property": "labels", "type": "array", "value": "C"}},
                ]},
            ],
        }


class TestResolveSort:
    """정렬 결정"""

    def test_no_sort(self):
        assert resolve_sort(QueryOptions()) is None

    @pytest.mark.parametrize("sort_dir", ["asc", "desc"])
    def test_shuffle_ignores_direction(self, sort_dir):
        sort = resolve_sort(QueryOptions(sort_by="$shuffle", sort_dir=sort_dir), shuffle_seed="seed-42")
        assert sort == SortSpec(sort_by="$shuffle", ascending=False, sort_type="seed-42")
        assert sort.is_shuffle
        assert sort.seed == "seed-42"

    def test_shuffle_default_seed(self):
        sort = resolve_sort(QueryOptions(sort_by="$shuffle"))
        assert sort.sort_type == "default"

    @pytest.mark.parametrize("field,value_type", [
        ("added_on", ValueType.NUMBER),
        ("name", ValueType.STRING),
        ("bookmark", ValueType.NUMBER),
        ("num_scenes", ValueType.NUMBER),
    ])
    def test_known_fields(self, field, value_type):
        sort = resolve_sort(QueryOptions(sort_by=field, sort_dir="asc"))
        assert sort == SortSpec(sort_by=field, ascending=True, sort_type=value_type)

    def test_sortable_fields(self):
        assert set(SORT_TYPES) == {"added_on", "name", "bookmark", "num_scenes"}

    def test_descending(self):
        assert resolve_sort(QueryOptions(sort_by="name", sort_dir="desc")).ascending is False

    def test_unknown_field_passes_through(self, caplog):
        with caplog.at_level(logging.WARNING, logger="search.query_compiler"):
            sort = resolve_sort(QueryOptions(sort_by="rating", sort_dir="asc"))

        assert sort == SortSpec(sort_by="rating", ascending=True, sort_type=None)
        assert "rating" in caplog.text


class TestResolvePagination:
    """skip / take 결정"""

    def test_explicit_skip_take_override_page(self):
        assert resolve_pagination(QueryOptions(skip=10, take=5, page=3)) == (10, 5)

    def test_page_based(self):
        assert resolve_pagination(QueryOptions(page=2)) == (48, 24)

    def test_first_page(self):
        assert resolve_pagination(QueryOptions()) == (0, 24)

    def test_explicit_zero_skip_wins(self):
        assert resolve_pagination(QueryOptions(skip=0, page=2)) == (0, 24)

    def test_take_only(self):
        assert resolve_pagination(QueryOptions(take=10, page=1)) == (24, 10)


class TestQueryOptions:
    """입력 검증"""

    def test_defaults(self):
        options = QueryOptions()
        assert options.query == ""
        assert options.include == []
        assert options.sort_dir == "desc"
        assert options.page == 0

    def test_dedupes_labels_in_order(self):
        options = QueryOptions(include=["B", "A", "B"], exclude=["C", "C"])
        assert options.include == ["B", "A"]
        assert options.exclude == ["C"]

    @pytest.mark.parametrize("kwargs", [
        {"page": -1},
        {"skip": -5},
        {"take": 0},
        {"sort_dir": "up"},
    ])
    def test_rejects_invalid(self, kwargs):
        with pytest.raises(ValidationError):
            QueryOptions(**kwargs)


class TestQueryCompiler:
    """검색 실행"""

    def test_compile_omits_empty_filter(self, mock_index_client):
        request = QueryCompiler(mock_index_client).compile(QueryOptions(query="acme"))
        assert request.query == "acme"
        assert request.filter is None
        assert request.sort is None
        assert (request.skip, request.take) == (0, 24)

    def test_compile_full(self, mock_index_client):
        options = QueryOptions(
            query="acme", favorite=True, include=["A"], sort_by="$shuffle", page=1,
        )
        request = QueryCompiler(mock_index_client).compile(options, shuffle_seed="xyz")

        assert request.filter == compile_filter(options)
        assert request.sort.sort_type == "xyz"
        assert (request.skip, request.take) == (24, 24)

    def test_search_issues_single_call(self, mock_index_client):
        page = SearchPage(total=1, hits=[SearchHit(id="st_acme", score=1.5)])
        mock_index_client.search.return_value = page
        index = Index(name="studios")

        result = asyncio.run(QueryCompiler(mock_index_client).search(
            index, QueryOptions(query="acme", bookmark=True), shuffle_seed="s",
        ))

        assert result is page
        assert mock_index_client.search.await_count == 1
        called_index, request = mock_index_client.search.call_args.args
        assert called_index is index
        assert request.query == "acme"
        assert request.filter.children == [Condition(Operation.GT, "bookmark", ValueType.NUMBER, 0)]
