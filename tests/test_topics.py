"""
Tests for topic endpoints: topics, topic members, tasks and links.
"""

from __future__ import annotations

import uuid
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select

from internal_chat.models.crm import CrmTask, Deal, Meeting, Project
from internal_chat.models.topic import InternalTopicMember
from internal_chat.services.topics import add_topic_member

CHAT = "/api/internal-chat"


@pytest.fixture
async def channel(client, seed, as_alice):
    resp = await client.post(
        f"{CHAT}/channels", json={"name": "general", "member_ids": [str(seed.bob.id)]}, headers=as_alice
    )
    assert resp.status_code == 201
    return resp.json()


@pytest.fixture
async def topic(client, channel, as_alice):
    resp = await client.post(
        f"{CHAT}/channels/{channel['id']}/topics", json={"title": "Q3 planning"}, headers=as_alice
    )
    assert resp.status_code == 201
    return resp.json()


# ---------------------------------------------------------------------------
# Topic CRUD
# ---------------------------------------------------------------------------


class TestTopics:
    @pytest.mark.asyncio
    async def test_create_topic(self, client, seed, channel, topic):
        assert topic["channel_id"] == channel["id"]
        assert topic["title"] == "Q3 planning"
        assert topic["status"] == "open"
        assert topic["created_by"] == str(seed.alice.id)
        assert topic["created_by_name"] == "Alice"
        assert topic["message_count"] == 0
        assert topic["last_message_at"] is None
        assert topic["closed_by"] is None

    @pytest.mark.asyncio
    async def test_channel_counts_open_topics(self, client, channel, topic, as_alice):
        resp = await client.get(f"{CHAT}/channels", headers=as_alice)
        assert resp.json()[0]["open_topics_count"] == 1

    @pytest.mark.asyncio
    async def test_list_topics(self, client, channel, topic, as_bob):
        resp = await client.get(f"{CHAT}/channels/{channel['id']}/topics", headers=as_bob)
        assert resp.status_code == 200
        assert [t["id"] for t in resp.json()] == [topic["id"]]

    @pytest.mark.asyncio
    async def test_status_filter(self, client, channel, topic, as_alice):
        url = f"{CHAT}/channels/{channel['id']}/topics"
        resp = await client.get(url, params={"status": "closed"}, headers=as_alice)
        assert resp.json() == []

        resp = await client.get(url, params={"status": "open"}, headers=as_alice)
        assert len(resp.json()) == 1

    @pytest.mark.asyncio
    async def test_invalid_status_filter_rejected(self, client, channel, as_alice):
        resp = await client.get(
            f"{CHAT}/channels/{channel['id']}/topics", params={"status": "done"}, headers=as_alice
        )
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_topics_of_other_org_channel_is_404(self, client, channel, as_dave):
        resp = await client.get(f"{CHAT}/channels/{channel['id']}/topics", headers=as_dave)
        assert resp.status_code == 404

        resp = await client.post(
            f"{CHAT}/channels/{channel['id']}/topics", json={"title": "x"}, headers=as_dave
        )
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_close_records_closer(self, client, seed, topic, as_bob):
        resp = await client.patch(f"{CHAT}/topics/{topic['id']}", json={"status": "closed"}, headers=as_bob)
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "closed"
        assert data["closed_by"] == str(seed.bob.id)
        assert data["closed_at"] is not None

    @pytest.mark.asyncio
    async def test_reopen_clears_closer(self, client, topic, as_alice):
        url = f"{CHAT}/topics/{topic['id']}"
        await client.patch(url, json={"status": "closed"}, headers=as_alice)
        resp = await client.patch(url, json={"status": "in_progress"}, headers=as_alice)
        data = resp.json()
        assert data["status"] == "in_progress"
        assert data["closed_by"] is None
        assert data["closed_at"] is None

    @pytest.mark.asyncio
    async def test_rename(self, client, topic, as_alice):
        resp = await client.patch(f"{CHAT}/topics/{topic['id']}", json={"title": "Q4 planning"}, headers=as_alice)
        assert resp.json()["title"] == "Q4 planning"
        assert resp.json()["status"] == "open"

    @pytest.mark.asyncio
    async def test_move_to_other_channel(self, client, topic, as_alice):
        resp = await client.post(f"{CHAT}/channels", json={"name": "random"}, headers=as_alice)
        target = resp.json()

        resp = await client.patch(
            f"{CHAT}/topics/{topic['id']}", json={"channel_id": target["id"]}, headers=as_alice
        )
        assert resp.status_code == 200
        assert resp.json()["channel_id"] == target["id"]

        resp = await client.get(f"{CHAT}/channels/{target['id']}/topics", headers=as_alice)
        assert [t["id"] for t in resp.json()] == [topic["id"]]

    @pytest.mark.asyncio
    async def test_move_to_other_org_channel_is_404(self, client, topic, as_alice, as_dave):
        resp = await client.post(f"{CHAT}/channels", json={"name": "globex"}, headers=as_dave)
        foreign = resp.json()

        resp = await client.patch(
            f"{CHAT}/topics/{topic['id']}", json={"channel_id": foreign["id"]}, headers=as_alice
        )
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_nothing_to_update_is_400(self, client, topic, as_alice):
        resp = await client.patch(f"{CHAT}/topics/{topic['id']}", json={}, headers=as_alice)
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_update_other_org_topic_is_404(self, client, topic, as_dave):
        resp = await client.patch(f"{CHAT}/topics/{topic['id']}", json={"title": "x"}, headers=as_dave)
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_topic(self, client, channel, topic, as_alice):
        resp = await client.delete(f"{CHAT}/topics/{topic['id']}", headers=as_alice)
        assert resp.json() == {"success": True}

        resp = await client.get(f"{CHAT}/channels/{channel['id']}/topics", headers=as_alice)
        assert resp.json() == []


# ---------------------------------------------------------------------------
# Topic members
# ---------------------------------------------------------------------------


class TestTopicMembers:
    @pytest.mark.asyncio
    async def test_add_list_remove(self, client, seed, topic, as_alice):
        url = f"{CHAT}/topics/{topic['id']}/members"
        for _ in range(2):
            resp = await client.post(url, json={"user_id": str(seed.bob.id)}, headers=as_alice)
            assert resp.status_code == 200

        resp = await client.get(url, headers=as_alice)
        members = resp.json()
        assert len(members) == 1
        assert members[0]["user_name"] == "Bob"
        assert members[0]["topic_id"] == topic["id"]

        resp = await client.delete(f"{url}/{seed.bob.id}", headers=as_alice)
        assert resp.status_code == 200
        resp = await client.get(url, headers=as_alice)
        assert resp.json() == []

    @pytest.mark.asyncio
    async def test_add_unknown_user_is_404(self, client, topic, as_alice):
        resp = await client.post(
            f"{CHAT}/topics/{topic['id']}/members", json={"user_id": str(uuid.uuid4())}, headers=as_alice
        )
        assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


class TestTopicTasks:
    @pytest.mark.asyncio
    async def test_create_task(self, client, seed, topic, as_alice):
        resp = await client.post(
            f"{CHAT}/topics/{topic['id']}/tasks",
            json={"title": "Draft budget", "priority": "high", "assigned_to": str(seed.bob.id)},
            headers=as_alice,
        )
        assert resp.status_code == 201
        task = resp.json()
        assert task["title"] == "Draft budget"
        assert task["organization_id"] == str(seed.org.id)
        assert task["created_by"] == str(seed.alice.id)
        assert task["assigned_to"] == str(seed.bob.id)
        assert task["priority"] == "high"
        assert task["type"] == "task"
        assert task["status"] == "pending"

    @pytest.mark.asyncio
    async def test_task_defaults_to_creator(self, client, seed, topic, as_alice):
        resp = await client.post(
            f"{CHAT}/topics/{topic['id']}/tasks", json={"title": "Follow up"}, headers=as_alice
        )
        task = resp.json()
        assert task["assigned_to"] == str(seed.alice.id)
        assert task["priority"] == "medium"

    @pytest.mark.asyncio
    async def test_created_task_is_listed_and_linked(self, client, seed, topic, as_alice):
        resp = await client.post(
            f"{CHAT}/topics/{topic['id']}/tasks",
            json={"title": "Draft budget", "assigned_to": str(seed.bob.id)},
            headers=as_alice,
        )
        task = resp.json()

        resp = await client.get(f"{CHAT}/topics/{topic['id']}/tasks", headers=as_alice)
        tasks = resp.json()
        assert [t["id"] for t in tasks] == [task["id"]]
        assert tasks[0]["assigned_to_name"] == "Bob"

        resp = await client.get(f"{CHAT}/topics/{topic['id']}/links", headers=as_alice)
        links = resp.json()
        assert len(links) == 1
        assert links[0]["link_type"] == "task"
        assert links[0]["link_id"] == task["id"]
        assert links[0]["link_title"] == "Draft budget"

    @pytest.mark.asyncio
    async def test_invalid_priority_rejected(self, client, topic, as_alice):
        resp = await client.post(
            f"{CHAT}/topics/{topic['id']}/tasks", json={"title": "x", "priority": "asap"}, headers=as_alice
        )
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_no_organization(self, client, topic, as_carol):
        resp = await client.get(f"{CHAT}/topics/{topic['id']}/tasks", headers=as_carol)
        assert resp.status_code == 200
        assert resp.json() == []

        resp = await client.post(f"{CHAT}/topics/{topic['id']}/tasks", json={"title": "x"}, headers=as_carol)
        assert resp.status_code == 400


# ---------------------------------------------------------------------------
# Links
# ---------------------------------------------------------------------------


class TestTopicLinks:
    @pytest.mark.asyncio
    async def test_create_and_list(self, client, seed, topic, as_alice):
        link_id = str(uuid.uuid4())
        resp = await client.post(
            f"{CHAT}/topics/{topic['id']}/links",
            json={"link_type": "meeting", "link_id": link_id, "link_title": "Kickoff"},
            headers=as_alice,
        )
        assert resp.status_code == 201
        link = resp.json()
        assert link["topic_id"] == topic["id"]
        assert link["link_type"] == "meeting"
        assert link["link_id"] == link_id
        assert link["created_by"] == str(seed.alice.id)

        resp = await client.get(f"{CHAT}/topics/{topic['id']}/links", headers=as_alice)
        assert [item["id"] for item in resp.json()] == [link["id"]]

    @pytest.mark.asyncio
    async def test_duplicate_link_is_409(self, client, topic, as_alice):
        body = {"link_type": "deal", "link_id": str(uuid.uuid4())}
        url = f"{CHAT}/topics/{topic['id']}/links"
        assert (await client.post(url, json=body, headers=as_alice)).status_code == 201

        resp = await client.post(url, json=body, headers=as_alice)
        assert resp.status_code == 409
        assert resp.json()["detail"] == "Link already exists"

    @pytest.mark.asyncio
    async def test_same_record_different_type_allowed(self, client, topic, as_alice):
        record_id = str(uuid.uuid4())
        url = f"{CHAT}/topics/{topic['id']}/links"
        for link_type in ("project", "deal"):
            resp = await client.post(url, json={"link_type": link_type, "link_id": record_id}, headers=as_alice)
            assert resp.status_code == 201

    @pytest.mark.asyncio
    async def test_invalid_link_type_rejected(self, client, topic, as_alice):
        resp = await client.post(
            f"{CHAT}/topics/{topic['id']}/links",
            json={"link_type": "invoice", "link_id": str(uuid.uuid4())},
            headers=as_alice,
        )
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_delete_link(self, client, topic, as_alice):
        resp = await client.post(
            f"{CHAT}/topics/{topic['id']}/links",
            json={"link_type": "project", "link_id": str(uuid.uuid4())},
            headers=as_alice,
        )
        link = resp.json()

        resp = await client.delete(f"{CHAT}/topics/links/{link['id']}", headers=as_alice)
        assert resp.status_code == 200

        resp = await client.get(f"{CHAT}/topics/{topic['id']}/links", headers=as_alice)
        assert resp.json() == []

    @pytest.mark.asyncio
    async def test_delete_unknown_link_is_404(self, client, seed, as_alice):
        resp = await client.delete(f"{CHAT}/topics/links/{uuid.uuid4()}", headers=as_alice)
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_other_org_link_is_404(self, client, topic, as_alice, as_dave):
        resp = await client.post(
            f"{CHAT}/topics/{topic['id']}/links",
            json={"link_type": "project", "link_id": str(uuid.uuid4())},
            headers=as_alice,
        )
        resp = await client.delete(f"{CHAT}/topics/links/{resp.json()['id']}", headers=as_dave)
        assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Linkable search
# ---------------------------------------------------------------------------


class TestSearchLinkable:
    @pytest.fixture
    async def records(self, session, seed):
        session.add_all([
            CrmTask(organization_id=seed.org.id, title="Prepare invoice", created_by=seed.alice.id),
            CrmTask(organization_id=seed.org.id, title="Call supplier", created_by=seed.alice.id),
            CrmTask(organization_id=seed.other_org.id, title="Prepare invoice", created_by=seed.dave.id),
            Meeting(organization_id=seed.org.id, title="Weekly sync"),
            Project(organization_id=seed.org.id, title="Website relaunch"),
            Deal(organization_id=seed.org.id, title="Enterprise renewal"),
        ])
        await session.commit()

    @pytest.mark.asyncio
    async def test_search_tasks_by_title(self, client, records, as_alice):
        resp = await client.get(
            f"{CHAT}/search-linkable", params={"type": "task", "q": "invoice"}, headers=as_alice
        )
        assert resp.status_code == 200
        assert [item["title"] for item in resp.json()] == ["Prepare invoice"]

    @pytest.mark.asyncio
    async def test_search_is_case_insensitive(self, client, records, as_alice):
        resp = await client.get(
            f"{CHAT}/search-linkable", params={"type": "meeting", "q": "WEEKLY"}, headers=as_alice
        )
        assert [item["title"] for item in resp.json()] == ["Weekly sync"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "link_type,title",
        [("project", "Website relaunch"), ("deal", "Enterprise renewal")],
    )
    async def test_empty_query_lists_all_of_type(self, client, records, as_alice, link_type, title):
        resp = await client.get(f"{CHAT}/search-linkable", params={"type": link_type}, headers=as_alice)
        assert [item["title"] for item in resp.json()] == [title]

    @pytest.mark.asyncio
    async def test_unknown_type_returns_empty(self, client, records, as_alice):
        resp = await client.get(
            f"{CHAT}/search-linkable", params={"type": "invoice", "q": "x"}, headers=as_alice
        )
        assert resp.status_code == 200
        assert resp.json() == []

    @pytest.mark.asyncio
    async def test_no_organization_returns_empty(self, client, records, as_carol):
        resp = await client.get(f"{CHAT}/search-linkable", params={"type": "task"}, headers=as_carol)
        assert resp.json() == []


# ---------------------------------------------------------------------------
# Unknown references and concurrent adds
# ---------------------------------------------------------------------------


class TestUnknownAssignee:
    @pytest.mark.asyncio
    async def test_unknown_assignee_is_404(self, client, topic, as_alice):
        resp = await client.post(
            f"{CHAT}/topics/{topic['id']}/tasks",
            json={"title": "Draft budget", "assigned_to": str(uuid.uuid4())},
            headers=as_alice,
        )
        assert resp.status_code == 404
        assert resp.json()["detail"] == "User not found"

        resp = await client.get(f"{CHAT}/topics/{topic['id']}/links", headers=as_alice)
        assert resp.json() == []


class TestConcurrentTopicMemberAdd:
    @pytest.mark.asyncio
    async def test_row_inserted_after_check_is_noop(self, session, seed, topic):
        topic_id = uuid.UUID(topic["id"])
        session.add(InternalTopicMember(topic_id=topic_id, user_id=seed.bob.id))
        await session.commit()

        # The existence check misses the row another request just committed
        with patch("internal_chat.services.topics._is_topic_member", AsyncMock(return_value=False)):
            added = await add_topic_member(session, topic_id, seed.bob.id)

        assert added is False
        result = await session.execute(
            select(func.count(InternalTopicMember.id)).where(InternalTopicMember.topic_id == topic_id)
        )
        assert result.scalar() == 1
