"""
Tests for GET /api/v2/search and the SearchService drivers.
"""

from datetime import datetime, timezone

import pytest
import pytest_asyncio
from httpx import AsyncClient
from starlette.datastructures import QueryParams

from forum_api.search.discussions import DiscussionSearchType
from forum_api.search.service import SearchService
from forum_api.services import BreadcrumbService, CategoryService, DiscussionService, TagService

SEARCH_URL = "/api/v2/search"


def jan(day: int) -> datetime:
    return datetime(2026, 1, day, tzinfo=timezone.utc)


class TestSearchEndpoint:
    """GET /api/v2/search tests."""

    async def test_search_by_terms(
        self, async_client: AsyncClient, test_user: dict, auth_headers, make_category, make_discussion
    ):
        general = await make_category("General")
        match = await make_discussion("Python tips", test_user, general.category_id)
        await make_discussion("Cooking", test_user, general.category_id, body="Pasta night")

        response = await async_client.get(
            SEARCH_URL, params={"query": "python"}, headers=auth_headers(test_user["api_key"])
        )
        assert response.status_code == 200
        data = response.json()
        assert data["totalCount"] == 1
        item = data["items"][0]
        assert item["recordID"] == match.discussion_id
        assert item["recordType"] == "discussion"
        assert item["type"] == "discussion"
        assert item["url"] == f"/discussion/{match.discussion_id}"
        assert item["insertUserID"] == test_user["user_id"]

    async def test_terms_match_body(
        self, async_client: AsyncClient, test_user: dict, auth_headers, make_category, make_discussion
    ):
        general = await make_category("General")
        await make_discussion("Cooking", test_user, general.category_id, body="Pasta night")

        response = await async_client.get(
            SEARCH_URL, params={"query": "PASTA"}, headers=auth_headers(test_user["api_key"])
        )
        assert [i["name"] for i in response.json()["items"]] == ["Cooking"]

    async def test_newest_first(
        self, async_client: AsyncClient, test_user: dict, auth_headers, make_category, make_discussion
    ):
        general = await make_category("General")
        await make_discussion("First", test_user, general.category_id, date_inserted=jan(1))
        await make_discussion("Third", test_user, general.category_id, date_inserted=jan(3))
        await make_discussion("Second", test_user, general.category_id, date_inserted=jan(2))

        response = await async_client.get(SEARCH_URL, headers=auth_headers(test_user["api_key"]))
        assert [i["name"] for i in response.json()["items"]] == ["Third", "Second", "First"]

    async def test_limit_and_offset(
        self, async_client: AsyncClient, test_user: dict, auth_headers, make_category, make_discussion
    ):
        general = await make_category("General")
        for day in (1, 2, 3):
            await make_discussion(f"Day {day}", test_user, general.category_id, date_inserted=jan(day))

        response = await async_client.get(
            SEARCH_URL, params={"limit": 1, "offset": 1}, headers=auth_headers(test_user["api_key"])
        )
        data = response.json()
        assert [i["name"] for i in data["items"]] == ["Day 2"]
        assert data["totalCount"] == 1

    async def test_paging_with_equal_timestamps(
        self, async_client: AsyncClient, test_user: dict, auth_headers, make_category, make_discussion
    ):
        general = await make_category("General")
        created = [
            await make_discussion(f"Same {i}", test_user, general.category_id, date_inserted=jan(1))
            for i in range(6)
        ]
        headers = auth_headers(test_user["api_key"])

        pages = []
        for offset in (0, 2, 4):
            response = await async_client.get(
                SEARCH_URL, params={"limit": 2, "offset": offset}, headers=headers
            )
            pages.append([i["recordID"] for i in response.json()["items"]])

        expected = sorted((d.discussion_id for d in created), reverse=True)
        assert pages == [expected[0:2], expected[2:4], expected[4:6]]

    async def test_category_filter(
        self, async_client: AsyncClient, test_user: dict, auth_headers, make_category, make_discussion
    ):
        general = await make_category("General")
        news = await make_category("News")
        await make_discussion("Chat", test_user, general.category_id)
        await make_discussion("Release", test_user, news.category_id)

        response = await async_client.get(
            SEARCH_URL, params={"categoryID": news.category_id}, headers=auth_headers(test_user["api_key"])
        )
        assert [i["name"] for i in response.json()["items"]] == ["Release"]

    async def test_child_categories_on_request(
        self, async_client: AsyncClient, test_user: dict, auth_headers, make_category, make_discussion
    ):
        general = await make_category("General")
        intros = await make_category("Intros", parent_category_id=general.category_id)
        await make_discussion("Hello", test_user, intros.category_id)
        headers = auth_headers(test_user["api_key"])

        response = await async_client.get(SEARCH_URL, params={"categoryID": general.category_id}, headers=headers)
        assert response.json()["items"] == []

        response = await async_client.get(
            SEARCH_URL,
            params={"categoryID": general.category_id, "includeChildCategories": "true"},
            headers=headers,
        )
        assert [i["name"] for i in response.json()["items"]] == ["Hello"]

    async def test_archived_categories_excluded(
        self, async_client: AsyncClient, test_user: dict, auth_headers, make_category, make_discussion
    ):
        general = await make_category("General")
        old = await make_category("Old", archived=True)
        await make_discussion("Current", test_user, general.category_id)
        await make_discussion("Ancient", test_user, old.category_id)
        headers = auth_headers(test_user["api_key"])

        response = await async_client.get(SEARCH_URL, headers=headers)
        assert [i["name"] for i in response.json()["items"]] == ["Current"]

        response = await async_client.get(
            SEARCH_URL, params={"includeArchivedCategories": "true"}, headers=headers
        )
        assert {i["name"] for i in response.json()["items"]} == {"Current", "Ancient"}

    async def test_followed_categories(
        self, async_client: AsyncClient, test_user: dict, auth_headers, make_category, make_discussion
    ):
        general = await make_category("General")
        news = await make_category("News")
        await make_discussion("Chat", test_user, general.category_id)
        await make_discussion("Release", test_user, news.category_id)
        headers = auth_headers(test_user["api_key"])
        await async_client.put(f"/api/v2/categories/{news.category_id}/follow", headers=headers)

        response = await async_client.get(SEARCH_URL, params={"followedCategories": "true"}, headers=headers)
        assert [i["name"] for i in response.json()["items"]] == ["Release"]

    async def test_hidden_categories_excluded(
        self,
        async_client: AsyncClient,
        test_user: dict,
        editor_user: dict,
        auth_headers,
        make_category,
        make_discussion,
    ):
        general = await make_category("General")
        staff = await make_category("Staff Room", view_role="staff")
        await make_discussion("Public", test_user, general.category_id)
        await make_discussion("Private", editor_user, staff.category_id)

        member = await async_client.get(SEARCH_URL, headers=auth_headers(test_user["api_key"]))
        assert [i["name"] for i in member.json()["items"]] == ["Public"]

        staff_member = await async_client.get(SEARCH_URL, headers=auth_headers(editor_user["api_key"]))
        assert {i["name"] for i in staff_member.json()["items"]} == {"Public", "Private"}

    async def test_hidden_category_filter_returns_403(
        self, async_client: AsyncClient, test_user: dict, auth_headers, make_category
    ):
        staff = await make_category("Staff Room", view_role="staff")
        response = await async_client.get(
            SEARCH_URL, params={"categoryID": staff.category_id}, headers=auth_headers(test_user["api_key"])
        )
        assert response.status_code == 403

    async def test_breadcrumbs(
        self, async_client: AsyncClient, test_user: dict, auth_headers, make_category, make_discussion
    ):
        general = await make_category("General")
        intros = await make_category("Intros", parent_category_id=general.category_id)
        await make_discussion("Hello", test_user, intros.category_id)

        response = await async_client.get(SEARCH_URL, headers=auth_headers(test_user["api_key"]))
        assert response.json()["items"][0]["breadcrumbs"] == [
            {"name": "Home", "url": "/"},
            {"name": "General", "url": "/categories/general"},
            {"name": "Intros", "url": "/categories/intros"},
        ]

    async def test_users_filter(
        self,
        async_client: AsyncClient,
        test_user: dict,
        second_user: dict,
        auth_headers,
        make_category,
        make_discussion,
    ):
        general = await make_category("General")
        await make_discussion("Mine", test_user, general.category_id)
        await make_discussion("Theirs", second_user, general.category_id)

        response = await async_client.get(
            SEARCH_URL, params={"users": str(second_user["user_id"])}, headers=auth_headers(test_user["api_key"])
        )
        assert [i["name"] for i in response.json()["items"]] == ["Theirs"]

    async def test_other_types_return_nothing(
        self, async_client: AsyncClient, test_user: dict, auth_headers, make_category, make_discussion
    ):
        general = await make_category("General")
        await make_discussion("Hello", test_user, general.category_id)

        response = await async_client.get(
            SEARCH_URL, params={"types": "comment"}, headers=auth_headers(test_user["api_key"])
        )
        assert response.json() == {"items": [], "totalCount": 0}

    @pytest.mark.parametrize(
        "params",
        [
            {"limit": 0},
            {"limit": 101},
            {"offset": -1},
            {"tagOperator": "xor"},
            {"categoryID": "general"},
        ],
    )
    async def test_invalid_parameters_return_422(
        self, async_client: AsyncClient, test_user: dict, auth_headers, params
    ):
        response = await async_client.get(SEARCH_URL, params=params, headers=auth_headers(test_user["api_key"]))
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_search_requires_auth(self, async_client: AsyncClient):
        response = await async_client.get(SEARCH_URL)
        assert response.status_code == 401


class TestParseParams:
    """SearchService.parse_params()."""

    @pytest.fixture
    def service(self) -> SearchService:
        return SearchService(None, [DiscussionSearchType(None, None, None, None)])

    def test_defaults(self, service):
        params = service.parse_params(QueryParams(""))
        assert params["limit"] == 10
        assert params["offset"] == 0
        assert params["tagOperator"] == "or"
        assert params["types"] is None

    def test_lists_accept_commas_and_repeats(self, service):
        params = service.parse_params(QueryParams("users=1,2&users=3&tags=python, web"))
        assert params["users"] == [1, 2, 3]
        assert params["tags"] == ["python", "web"]

    def test_wire_names(self, service):
        params = service.parse_params(QueryParams("categoryID=4&includeChildCategories=true&discussionID=2"))
        assert params["categoryID"] == 4
        assert params["includeChildCategories"] is True
        assert params["discussionID"] == 2

    def test_unknown_driver_rejected(self):
        with pytest.raises(ValueError):
            SearchService(None, [], driver="elastic")


class TestFilterDriver:
    """SearchService with the filter driver against the database."""

    @pytest.fixture
    def filter_service(self, db_session) -> SearchService:
        categories = CategoryService(db_session)
        discussion_type = DiscussionSearchType(
            discussions=DiscussionService(db_session, categories),
            categories=categories,
            tags=TagService(db_session),
            breadcrumbs=BreadcrumbService(categories),
        )
        return SearchService(db_session, [discussion_type], driver="filter")

    @pytest_asyncio.fixture
    async def tagged(self, test_user: dict, make_category, make_discussion) -> None:
        general = await make_category("General")
        await make_discussion("Both", test_user, general.category_id, tags=["python", "web"], date_inserted=jan(3))
        await make_discussion("Python only", test_user, general.category_id, tags=["python"], date_inserted=jan(2))
        await make_discussion("Untagged", test_user, general.category_id, date_inserted=jan(1))

    async def test_tags_or(self, filter_service: SearchService, test_user: dict, tagged):
        params = filter_service.parse_params({"tags": "Python,web"})
        items = await filter_service.search(params, test_user["user"])
        assert [i.name for i in items] == ["Both", "Python only"]

    async def test_tags_and(self, filter_service: SearchService, test_user: dict, tagged):
        params = filter_service.parse_params({"tags": "python,web", "tagOperator": "and"})
        items = await filter_service.search(params, test_user["user"])
        assert [i.name for i in items] == ["Both"]

    async def test_terms_and_paging(self, filter_service: SearchService, test_user: dict, tagged):
        params = filter_service.parse_params({"query": "o", "limit": "1", "offset": "1"})
        items = await filter_service.search(params, test_user["user"])
        assert [i.name for i in items] == ["Python only"]

    async def test_types_without_discussions(self, filter_service: SearchService, test_user: dict, tagged):
        params = filter_service.parse_params({"types": "comment"})
        assert await filter_service.search(params, test_user["user"]) == []
