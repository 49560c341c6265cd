"""查询构建器与分面编译测试"""

import pytest
from typesense import exceptions as ts_exceptions

from swapsearch.exceptions import InvalidArgumentError, NotFoundError, TransportError
from swapsearch.search.collection import Collection
from swapsearch.search.query import (
    NumericRange,
    Search,
    SortDirection,
    compile_facet_range,
    compile_facet_sort,
    format_value,
)
from swapsearch.search.results import Results


@pytest.fixture
def collection(fake_client) -> Collection:
    return Collection({"name": "posts@1", "fields": []}, client=fake_client).create()


@pytest.fixture
def search(collection) -> Search:
    return Search(collection, "foo", "title")


class TestQueryBy:
    """查询字段"""

    def test_single_field(self, search) -> None:
        compiled = search.compile()

        assert compiled == {"collection": "posts@1", "q": "foo", "query_by": "title"}

    def test_field_list(self, collection) -> None:
        compiled = Search(collection, "foo", ["title", "body"]).compile()

        assert compiled["query_by"] == "title,body"
        assert "query_by_weights" not in compiled

    def test_weighted_fields(self, collection) -> None:
        """测试权重映射生成位置对齐的两个参数"""
        compiled = Search(collection, "foo", {"title": 2, "body": 1}).compile()

        assert compiled["query_by"] == "title,body"
        assert compiled["query_by_weights"] == "2,1"


class TestFilterAndSort:
    """过滤与排序"""

    def test_filters_are_joined_with_and(self, search) -> None:
        search.filter("a:1").filter(["b:2", "c:3"]).filter({"d": 4})

        assert search.compile()["filter_by"] == "a:1 && b:2 && c:3 && d:4"

    def test_filter_value_formatting(self, search) -> None:
        search.filter({"published": True, "tags": ["x", "y"]})

        assert search.compile()["filter_by"] == "published:true && tags:[x,y]"

    def test_sort_keeps_priority_order(self, search) -> None:
        search.sort({"rank": "desc"}).sort("created_at:asc").sort({"title": SortDirection.ASC})

        assert search.compile()["sort_by"] == "rank:desc,created_at:asc,title:asc"

    def test_chaining_returns_builder(self, search) -> None:
        assert search.filter("a:1").sort("b:asc").per(5).page(2) is search


class TestFacet:
    """分面迷你语言"""

    def test_bare_fields(self, search) -> None:
        search.facet("brand").facet(["color", "size"])

        assert search.compile()["facet_by"] == "brand,color,size"

    def test_string_value_is_facet_query(self, search) -> None:
        """测试 None 值只分面，字符串值同时生成分面查询"""
        compiled = search.facet({"foo": "bar", "baz": None}).compile()

        assert compiled["facet_by"] == "foo,baz"
        assert compiled["facet_query"] == "foo:bar"

    def test_alphabetical_sort(self, search) -> None:
        compiled = search.facet({"foo": {"sort": "asc"}}).compile()

        assert compiled["facet_by"] == "foo(sort_by:_alpha:asc)"

    def test_field_sort(self, search) -> None:
        compiled = search.facet({"foo": {"sort": {"count": "desc"}}}).compile()

        assert compiled["facet_by"] == "foo(sort_by:count:desc)"

    def test_raw_sort_string(self, search) -> None:
        compiled = search.facet({"foo": {"sort": "_alpha:desc"}}).compile()

        assert compiled["facet_by"] == "foo(sort_by:_alpha:desc)"

    def test_sort_with_multiple_keys_raises(self, search) -> None:
        with pytest.raises(InvalidArgumentError):
            search.facet({"foo": {"sort": {"a": "asc", "b": "desc"}}})

    def test_ranges(self, search) -> None:
        compiled = search.facet({"foo": {"ranges": {"bad": range(0, 2), "good": [8, 10]}}}).compile()

        assert compiled["facet_by"] == "foo(bad:[0,2],good:[8,10])"

    def test_exclusive_range(self, search) -> None:
        compiled = search.facet({"foo": {"ranges": {"x": range(8, 10)}}}).compile()

        assert compiled["facet_by"] == "foo(x:[8,10])"

    def test_inclusive_range_raises(self, search) -> None:
        """测试包含上界的区间在发请求前被拒绝"""
        with pytest.raises(InvalidArgumentError):
            search.facet({"foo": {"ranges": {"x": NumericRange(1, 2, inclusive=True)}}})

    def test_float_range(self, search) -> None:
        compiled = search.facet({"price": {"ranges": {"cheap": NumericRange(0, 9.99)}}}).compile()

        assert compiled["facet_by"] == "price(cheap:[0,9.99])"

    def test_sort_and_ranges_combined(self, search) -> None:
        compiled = search.facet({"foo": {"sort": "desc", "ranges": {"x": [1, 5]}}}).compile()

        assert compiled["facet_by"] == "foo(sort_by:_alpha:desc,x:[1,5])"

    def test_return_parent_and_query(self, search) -> None:
        compiled = search.facet({
            "color.name": {"return_parent": True, "query": "bl"},
            "size": {"return_parent": False},
        }).compile()

        assert compiled["facet_by"] == "color.name,size"
        assert compiled["facet_return_parent"] == "color.name"
        assert compiled["facet_query"] == "color.name:bl"

    def test_ranges_must_be_mapping(self, search) -> None:
        with pytest.raises(InvalidArgumentError):
            search.facet({"foo": {"ranges": [1, 2]}})


class TestFacetHelpers:
    @pytest.mark.parametrize(
        ("sort", "expected"),
        [
            (None, None),
            ("asc", "_alpha:asc"),
            ("DESC", "_alpha:desc"),
            (SortDirection.DESC, "_alpha:desc"),
            ({"count": SortDirection.ASC}, "count:asc"),
            ("parent.name:asc", "parent.name:asc"),
        ],
    )
    def test_compile_facet_sort(self, sort, expected) -> None:
        assert compile_facet_sort(sort) == expected

    def test_compile_facet_sort_rejects_other_types(self) -> None:
        with pytest.raises(InvalidArgumentError):
            compile_facet_sort(42)

    @pytest.mark.parametrize(
        "value",
        [range(0, 10, 2), [1, 2, 3], "1..2", 5],
    )
    def test_compile_facet_range_rejects(self, value) -> None:
        with pytest.raises(InvalidArgumentError):
            compile_facet_range("x", value)

    def test_format_value(self) -> None:
        assert format_value(False) == "false"
        assert format_value([1, True, "a"]) == "[1,true,a]"
        assert format_value(SortDirection.ASC) == "asc"
        assert format_value(3.5) == "3.5"


class TestProjectionAndParams:
    """字段投影、分组与通用参数"""

    def test_include_exclude_group(self, search) -> None:
        compiled = (search
            .include_fields("id", "title")
            .exclude_fields("body")
            .group_by("brand")
            .compile())

        assert compiled["include_fields"] == "id,title"
        assert compiled["exclude_fields"] == "body"
        assert compiled["group_by"] == "brand"

    def test_pagination_is_generic_params(self, search) -> None:
        compiled = search.per(20).page(3).compile()

        assert compiled["per_page"] == 20
        assert compiled["page"] == 3

    def test_set_overrides_computed_values(self, search) -> None:
        compiled = search.filter("a:1").set({"filter_by": "b:2"}, num_typos=0).compile()

        assert compiled["filter_by"] == "b:2"
        assert compiled["num_typos"] == 0

    def test_set_none_removes_param(self, search) -> None:
        """测试设置为 None 的参数不会出现在编译结果中"""
        compiled = search.set(foo="bar", baz=None).per(10).set(per_page=None).compile()

        assert compiled["foo"] == "bar"
        assert "baz" not in compiled
        assert "per_page" not in compiled

    def test_false_is_kept(self, search) -> None:
        assert search.set(prioritize_exact_match=False).compile()["prioritize_exact_match"] is False


class TestLoad:
    """执行查询"""

    def test_load_sends_params_without_collection(self, search, fake_client) -> None:
        fake_client.search_response = {
            "found": 1,
            "page": 1,
            "hits": [{"document": {"id": "1"}, "text_match": 10}],
            "request_params": {"per_page": 10},
        }

        results = search.filter({"a": 1}).load()

        assert fake_client.search_calls == [{"q": "foo", "query_by": "title", "filter_by": "a:1"}]
        assert isinstance(results, Results)
        assert results.count == 1
        assert results.hits[0].document == {"id": "1"}

    def test_load_missing_collection(self, fake_client) -> None:
        search = Search(Collection({"name": "gone"}, client=fake_client), "foo", "title")

        with pytest.raises(NotFoundError):
            search.load()


class TestMulti:
    """批量查询"""

    def test_named_searches_send_one_request(self, collection, fake_client) -> None:
        a = Search(collection, "a", "title")
        b = Search(collection, "b", "title")

        results = Search.multi({"a": a, "b": b})

        assert len(fake_client.multi_search_calls) == 1
        assert list(results) == ["a", "b"]
        assert results["a"].raw["request_params"]["q"] == "a"
        assert results["b"].raw["request_params"]["q"] == "b"

    def test_positional_searches_keep_order(self, collection, fake_client) -> None:
        searches = [Search(collection, q, "title") for q in ("x", "y", "z")]

        results = Search.multi(*searches)

        assert [r.raw["request_params"]["q"] for r in results] == ["x", "y", "z"]
        assert len(fake_client.multi_search_calls) == 1

    def test_list_argument(self, collection, fake_client) -> None:
        results = Search.multi([Search(collection, "x", "title"), Search(collection, "y", "title")])

        assert [r.raw["request_params"]["q"] for r in results] == ["x", "y"]

    def test_compiled_params_include_collection(self, collection, fake_client) -> None:
        Search.multi(Search(collection, "x", "title"))

        (request,) = fake_client.multi_search_calls
        assert request["searches"] == [{"collection": "posts@1", "q": "x", "query_by": "title"}]

    def test_raw_dict_searches(self, fake_client) -> None:
        results = Search.multi([{"collection": "posts", "q": "x", "query_by": "title"}], client=fake_client)

        assert results[0].raw["request_params"]["q"] == "x"

    def test_empty_named_batch_returns_empty_mapping(self, fake_client) -> None:
        """测试空映射返回空映射且不发请求"""
        assert Search.multi({}, client=fake_client) == {}
        assert fake_client.multi_search_calls == []

    def test_empty_positional_batch_returns_empty_list(self, fake_client) -> None:
        assert Search.multi([], client=fake_client) == []
        assert fake_client.multi_search_calls == []

    def test_transport_error(self, collection, fake_client, monkeypatch) -> None:
        def fail(*args, **kwargs):
            raise ts_exceptions.ServiceUnavailable(503, "Not Ready")

        monkeypatch.setattr(fake_client.multi_search, "perform", fail)

        with pytest.raises(TransportError):
            Search.multi(Search(collection, "x", "title"))
