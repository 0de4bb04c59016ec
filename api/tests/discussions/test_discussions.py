"""
Tests for discussion endpoints:
- GET /api/v2/discussions (list)
- POST /api/v2/discussions (create)
- GET /api/v2/discussions/{discussionID} (read)
- PATCH /api/v2/discussions/{discussionID} (update)
- DELETE /api/v2/discussions/{discussionID} (delete)
"""

from datetime import datetime, timezone

from httpx import AsyncClient

DISCUSSIONS_URL = "/api/v2/discussions"


class TestListDiscussions:
    """GET /api/v2/discussions tests."""

    async def test_list_newest_first(
        self, async_client: AsyncClient, test_user: dict, auth_headers, make_category, make_discussion
    ):
        general = await make_category("General")
        await make_discussion("Older", test_user, general.category_id, date_inserted=datetime(2026, 1, 1, tzinfo=timezone.utc))
        await make_discussion("Newer", test_user, general.category_id, date_inserted=datetime(2026, 2, 1, tzinfo=timezone.utc))

        response = await async_client.get(DISCUSSIONS_URL, headers=auth_headers(test_user["api_key"]))
        assert response.status_code == 200
        assert [d["name"] for d in response.json()] == ["Newer", "Older"]

    async def test_list_hides_restricted_categories(
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

        member = await async_client.get(DISCUSSIONS_URL, headers=auth_headers(test_user["api_key"]))
        assert [d["name"] for d in member.json()] == ["Public"]

        staff_member = await async_client.get(DISCUSSIONS_URL, headers=auth_headers(editor_user["api_key"]))
        assert {d["name"] for d in staff_member.json()} == {"Public", "Private"}

    async def test_admin_sees_everything(
        self, async_client: AsyncClient, test_admin: dict, auth_headers, make_category, make_discussion
    ):
        staff = await make_category("Staff Room", view_role="staff")
        await make_discussion("Private", test_admin, staff.category_id)

        response = await async_client.get(DISCUSSIONS_URL, headers=auth_headers(test_admin["api_key"]))
        assert [d["name"] for d in response.json()] == ["Private"]

    async def test_uncategorized_discussions_are_listed(
        self, async_client: AsyncClient, test_user: dict, auth_headers, make_discussion
    ):
        await make_discussion("Loose", test_user)

        response = await async_client.get(DISCUSSIONS_URL, headers=auth_headers(test_user["api_key"]))
        assert [d["name"] for d in response.json()] == ["Loose"]
        assert response.json()[0]["categoryID"] is None

    async def test_filter_by_ids(
        self, async_client: AsyncClient, test_user: dict, auth_headers, make_discussion
    ):
        first = await make_discussion("First", test_user)
        await make_discussion("Second", test_user)
        third = await make_discussion("Third", test_user)

        response = await async_client.get(
            DISCUSSIONS_URL,
            params={"discussionID": f"{first.discussion_id},{third.discussion_id}"},
            headers=auth_headers(test_user["api_key"]),
        )
        assert {d["name"] for d in response.json()} == {"First", "Third"}

    async def test_bad_id_list_returns_400(self, async_client: AsyncClient, test_user: dict, auth_headers):
        response = await async_client.get(
            DISCUSSIONS_URL, params={"discussionID": "1,abc"}, headers=auth_headers(test_user["api_key"])
        )
        assert response.status_code == 400

    async def test_filter_by_category(
        self, async_client: AsyncClient, test_user: dict, auth_headers, make_category, make_discussion
    ):
        general = await make_category("General")
        news = await make_category("News")
        await make_discussion("Chat", test_user, general.category_id)
        await make_discussion("Release", test_user, news.category_id)

        response = await async_client.get(
            DISCUSSIONS_URL,
            params={"categoryID": news.category_id},
            headers=auth_headers(test_user["api_key"]),
        )
        assert [d["name"] for d in response.json()] == ["Release"]

    async def test_restricted_category_filter_returns_403(
        self, async_client: AsyncClient, test_user: dict, auth_headers, make_category
    ):
        staff = await make_category("Staff Room", view_role="staff")
        response = await async_client.get(
            DISCUSSIONS_URL,
            params={"categoryID": staff.category_id},
            headers=auth_headers(test_user["api_key"]),
        )
        assert response.status_code == 403
        assert response.json()["detail"]["error"]["details"]["permission"] == "discussions:view"

    async def test_limit(self, async_client: AsyncClient, test_user: dict, auth_headers, make_discussion):
        for i in range(3):
            await make_discussion(f"D{i}", test_user)

        response = await async_client.get(
            DISCUSSIONS_URL, params={"limit": 2}, headers=auth_headers(test_user["api_key"])
        )
        assert len(response.json()) == 2

    async def test_list_requires_auth(self, async_client: AsyncClient):
        response = await async_client.get(DISCUSSIONS_URL)
        assert response.status_code == 401


class TestCreateDiscussion:
    """POST /api/v2/discussions tests."""

    async def test_create_returns_201(
        self, async_client: AsyncClient, test_user: dict, auth_headers, make_category
    ):
        general = await make_category("General")
        response = await async_client.post(
            DISCUSSIONS_URL,
            json={"name": "Hello", "body": "First post", "categoryID": general.category_id},
            headers=auth_headers(test_user["api_key"]),
        )
        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "Hello"
        assert data["categoryID"] == general.category_id
        assert data["insertUserID"] == test_user["user_id"]
        assert data["author"] == "Testuser"
        assert data["format"] == "markdown"
        assert data["type"] == "discussion"
        assert data["url"] == f"/discussion/{data['discussionID']}"

    async def test_create_with_tags(
        self, async_client: AsyncClient, test_user: dict, auth_headers, make_category
    ):
        general = await make_category("General")
        response = await async_client.post(
            DISCUSSIONS_URL,
            json={
                "name": "Tagged",
                "body": "Body",
                "categoryID": general.category_id,
                "tags": ["Python", "python", "FastAPI"],
            },
            headers=auth_headers(test_user["api_key"]),
        )
        names = sorted(tag["name"] for tag in response.json()["tags"])
        assert names == ["FastAPI", "Python"]

    async def test_create_requires_add_scope(
        self, async_client: AsyncClient, reader_user: dict, auth_headers, make_category
    ):
        general = await make_category("General")
        response = await async_client.post(
            DISCUSSIONS_URL,
            json={"name": "Hello", "body": "Body", "categoryID": general.category_id},
            headers=auth_headers(reader_user["api_key"]),
        )
        assert response.status_code == 403

    async def test_create_in_restricted_category_returns_403(
        self, async_client: AsyncClient, test_user: dict, auth_headers, make_category
    ):
        staff = await make_category("Staff Room", view_role="staff")
        response = await async_client.post(
            DISCUSSIONS_URL,
            json={"name": "Hello", "body": "Body", "categoryID": staff.category_id},
            headers=auth_headers(test_user["api_key"]),
        )
        assert response.status_code == 403

    async def test_create_in_missing_category_returns_404(
        self, async_client: AsyncClient, test_user: dict, auth_headers
    ):
        response = await async_client.post(
            DISCUSSIONS_URL,
            json={"name": "Hello", "body": "Body", "categoryID": 999},
            headers=auth_headers(test_user["api_key"]),
        )
        assert response.status_code == 404

    async def test_create_with_empty_name_returns_422(
        self, async_client: AsyncClient, test_user: dict, auth_headers, make_category
    ):
        general = await make_category("General")
        response = await async_client.post(
            DISCUSSIONS_URL,
            json={"name": " ", "body": "Body", "categoryID": general.category_id},
            headers=auth_headers(test_user["api_key"]),
        )
        assert response.status_code == 422


class TestGetDiscussion:
    """GET /api/v2/discussions/{discussionID} tests."""

    async def test_get_discussion(
        self, async_client: AsyncClient, test_user: dict, auth_headers, make_discussion
    ):
        discussion = await make_discussion("Hello", test_user, tags=["intro"])
        response = await async_client.get(
            f"{DISCUSSIONS_URL}/{discussion.discussion_id}", headers=auth_headers(test_user["api_key"])
        )
        assert response.status_code == 200
        data = response.json()
        assert data["discussionID"] == discussion.discussion_id
        assert [tag["name"] for tag in data["tags"]] == ["intro"]
        assert data["dateInserted"]

    async def test_missing_discussion_returns_404(self, async_client: AsyncClient, test_user: dict, auth_headers):
        response = await async_client.get(f"{DISCUSSIONS_URL}/999", headers=auth_headers(test_user["api_key"]))
        assert response.status_code == 404

    async def test_restricted_discussion_returns_403(
        self,
        async_client: AsyncClient,
        test_user: dict,
        editor_user: dict,
        auth_headers,
        make_category,
        make_discussion,
    ):
        staff = await make_category("Staff Room", view_role="staff")
        discussion = await make_discussion("Private", editor_user, staff.category_id)
        response = await async_client.get(
            f"{DISCUSSIONS_URL}/{discussion.discussion_id}", headers=auth_headers(test_user["api_key"])
        )
        assert response.status_code == 403


class TestUpdateDiscussion:
    """PATCH /api/v2/discussions/{discussionID} tests."""

    async def test_author_can_edit(
        self, async_client: AsyncClient, test_user: dict, auth_headers, make_discussion
    ):
        discussion = await make_discussion("Draft", test_user)
        response = await async_client.patch(
            f"{DISCUSSIONS_URL}/{discussion.discussion_id}",
            json={"name": "Final", "tags": ["done"]},
            headers=auth_headers(test_user["api_key"]),
        )
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Final"
        assert data["body"] == "Discussion body"
        assert [tag["name"] for tag in data["tags"]] == ["done"]
        assert data["dateUpdated"] is not None

    async def test_other_member_cannot_edit(
        self, async_client: AsyncClient, test_user: dict, second_user: dict, auth_headers, make_discussion
    ):
        discussion = await make_discussion("Mine", test_user)
        response = await async_client.patch(
            f"{DISCUSSIONS_URL}/{discussion.discussion_id}",
            json={"name": "Theirs"},
            headers=auth_headers(second_user["api_key"]),
        )
        assert response.status_code == 403
        assert response.json()["detail"]["error"]["details"]["permission"] == "discussions:edit"

    async def test_editor_can_edit(
        self, async_client: AsyncClient, test_user: dict, editor_user: dict, auth_headers, make_discussion
    ):
        discussion = await make_discussion("Typo", test_user)
        response = await async_client.patch(
            f"{DISCUSSIONS_URL}/{discussion.discussion_id}",
            json={"name": "Fixed"},
            headers=auth_headers(editor_user["api_key"]),
        )
        assert response.status_code == 200

    async def test_move_to_category(
        self, async_client: AsyncClient, test_user: dict, auth_headers, make_category, make_discussion
    ):
        news = await make_category("News")
        discussion = await make_discussion("Moving", test_user)
        response = await async_client.patch(
            f"{DISCUSSIONS_URL}/{discussion.discussion_id}",
            json={"categoryID": news.category_id},
            headers=auth_headers(test_user["api_key"]),
        )
        assert response.json()["categoryID"] == news.category_id


class TestDeleteDiscussion:
    """DELETE /api/v2/discussions/{discussionID} tests."""

    async def test_author_can_delete(
        self, async_client: AsyncClient, test_user: dict, auth_headers, make_discussion
    ):
        discussion = await make_discussion("Bye", test_user, tags=["temp"])
        headers = auth_headers(test_user["api_key"])

        response = await async_client.delete(f"{DISCUSSIONS_URL}/{discussion.discussion_id}", headers=headers)
        assert response.status_code == 204

        response = await async_client.get(f"{DISCUSSIONS_URL}/{discussion.discussion_id}", headers=headers)
        assert response.status_code == 404

    async def test_other_member_cannot_delete(
        self, async_client: AsyncClient, test_user: dict, second_user: dict, auth_headers, make_discussion
    ):
        discussion = await make_discussion("Keep", test_user)
        response = await async_client.delete(
            f"{DISCUSSIONS_URL}/{discussion.discussion_id}", headers=auth_headers(second_user["api_key"])
        )
        assert response.status_code == 403

    async def test_admin_can_delete(
        self, async_client: AsyncClient, test_user: dict, test_admin: dict, auth_headers, make_discussion
    ):
        discussion = await make_discussion("Spam", test_user)
        response = await async_client.delete(
            f"{DISCUSSIONS_URL}/{discussion.discussion_id}", headers=auth_headers(test_admin["api_key"])
        )
        assert response.status_code == 204
