"""API integration tests: annotations, threads, selection, real-time, anchoring."""

import asyncio

from tests.fixtures import add_via_api, make_annotation, make_message, make_reply


class TestHealth:
    async def test_health(self, client):
        resp = await client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"


class TestAnnotationEndpoints:
    async def test_add_and_list(self, client):
        added = await add_via_api(client, make_annotation("a", start=1))
        assert [a["id"] for a in added] == ["a"]
        assert added[0]["tag"] == "t1"

        resp = await client.get("/api/annotations")
        assert [a["id"] for a in resp.json()] == ["a"]

    async def test_delete(self, client):
        await add_via_api(client, make_annotation("a", start=1))

        resp = await client.delete("/api/annotations/a")

        assert resp.status_code == 204
        assert (await client.get("/api/annotations")).json() == []

    async def test_delete_by_tag(self, client):
        await add_via_api(client, make_annotation(None, start=1))
        resp = await client.delete("/api/annotations/t1")
        assert resp.status_code == 204

    async def test_delete_unknown_returns_404(self, client):
        resp = await client.delete("/api/annotations/nope")
        assert resp.status_code == 404


class TestThreadEndpoints:
    async def test_nested_thread(self, client):
        parent = make_annotation("a", start=1)
        await add_via_api(client, parent, make_reply(parent, "b"))

        resp = await client.get("/api/threads")

        assert resp.status_code == 200
        root = resp.json()
        assert root["visible"] is False
        assert root["depth"] == -1
        assert [c["id"] for c in root["children"]] == ["a"]
        thread = root["children"][0]
        assert thread["reply_count"] == 1
        assert [c["id"] for c in thread["children"]] == ["b"]

    async def test_query_filters_threads(self, client):
        await add_via_api(
            client,
            make_annotation("a", start=1, text="apples"),
            make_annotation("b", start=2, text="pears"),
        )

        resp = await client.put("/api/selection/query", json={"query": "text:apples"})
        assert resp.json()["filter_query"] == "text:apples"

        root = (await client.get("/api/threads")).json()
        assert [c["id"] for c in root["children"]] == ["a"]

    async def test_sort_key(self, client):
        await add_via_api(
            client,
            make_annotation("old", start=1, created="2020-01-01"),
            make_annotation("new", start=2, created="2020-05-01"),
        )

        resp = await client.put("/api/selection/sort", json={"sort_key": "Newest"})
        assert resp.json()["sort_key"] == "Newest"

        root = (await client.get("/api/threads")).json()
        assert [c["id"] for c in root["children"]] == ["new", "old"]

    async def test_invalid_sort_key(self, client):
        resp = await client.put("/api/selection/sort", json={"sort_key": "Random"})
        assert resp.status_code == 422

    async def test_select_and_clear(self, client):
        await add_via_api(client, make_annotation("a", start=1), make_annotation("b", start=2))

        await client.put("/api/selection/selected", json={"ids": ["b"]})
        root = (await client.get("/api/threads")).json()
        assert [c["id"] for c in root["children"]] == ["b"]

        resp = await client.delete("/api/selection")
        assert resp.json()["selected"] == []

    async def test_expand_thread(self, client):
        await add_via_api(client, make_annotation("a", start=1))

        await client.post("/api/selection/expanded", json={"thread_id": "a", "expanded": True})

        root = (await client.get("/api/threads")).json()
        assert root["children"][0]["collapsed"] is False

    async def test_tab_switch(self, client):
        await add_via_api(client, make_annotation("a", start=1), make_annotation("note"))

        resp = await client.put("/api/selection/tab", json={"tab": "note"})
        assert resp.json()["selected_tab"] == "note"
        assert resp.json()["sort_key"] == "Oldest"

        root = (await client.get("/api/threads")).json()
        assert [c["id"] for c in root["children"]] == ["note"]

    async def test_user_filter_and_focus(self, client):
        await add_via_api(
            client,
            make_annotation("a", start=1, user="acct:alice@example.com"),
            make_annotation("b", start=2, user="acct:bob@example.com"),
        )

        resp = await client.put(
            "/api/selection/filters/user", json={"value": "bob", "display": "Bob"}
        )
        assert resp.json()["filters"] == {"user": "bob"}
        root = (await client.get("/api/threads")).json()
        assert [c["id"] for c in root["children"]] == ["b"]

        resp = await client.put("/api/focus", json={"active": False})
        assert resp.json()["focus_active"] is False

    async def test_visible_threads(self, client, settings):
        await add_via_api(client, *[make_annotation(f"a{i}", start=i) for i in range(10)])

        resp = await client.post(
            "/api/visible-threads",
            json={"scroll_pos": 2000, "window_height": 400, "thread_heights": {"a0": 300}},
        )

        assert resp.status_code == 200
        body = resp.json()
        # a0 (300) + a1..a4 (200 each) end above 2000 - 800
        assert body["offscreen_upper_height"] == 1100
        assert body["visible_thread_ids"][0] == "a5"
        assert body["offscreen_lower_height"] == 0


class TestRealtimeEndpoints:
    async def test_messages_are_buffered(self, client):
        message = make_message("create", make_annotation("x", start=1))

        resp = await client.post("/api/realtime/messages", json=message.model_dump(mode="json"))

        assert resp.status_code == 200
        assert resp.json()["pending_update_count"] == 1
        assert resp.json()["updated"] == ["x"]
        assert (await client.get("/api/annotations")).json() == []

    async def test_apply(self, client):
        message = make_message("create", make_annotation("x", start=1))
        await client.post("/api/realtime/messages", json=message.model_dump(mode="json"))

        resp = await client.post("/api/realtime/apply")

        assert [a["id"] for a in resp.json()] == ["x"]
        pending = (await client.get("/api/realtime/pending")).json()
        assert pending["pending_update_count"] == 0

    async def test_delete_message(self, client):
        await add_via_api(client, make_annotation("x", start=1))
        message = make_message("delete", make_annotation("x"))

        resp = await client.post("/api/realtime/messages", json=message.model_dump(mode="json"))

        assert resp.json()["deleted"] == ["x"]

    async def test_unknown_message_type(self, client):
        resp = await client.post("/api/realtime/messages", json={"type": "whoami"})
        assert resp.status_code == 422

    async def test_focus_group_clears_pending(self, client):
        message = make_message("create", make_annotation("x", start=1))
        await client.post("/api/realtime/messages", json=message.model_dump(mode="json"))

        resp = await client.post("/api/groups/focus", json={"group_id": "other"})

        assert resp.json()["pending_update_count"] == 0


class TestAnchoringEndpoint:
    async def test_statuses_flushed(self, client):
        await add_via_api(client, make_annotation("a", start=1, orphan=None))

        resp = await client.post(
            "/api/anchoring", json={"statuses": {"t1": "orphan"}, "flush": True}
        )

        assert resp.status_code == 202
        assert resp.json() == {}
        annotation = (await client.get("/api/annotations")).json()[0]
        assert annotation["orphan"] is True

    async def test_statuses_coalesced(self, client):
        await add_via_api(client, make_annotation("a", start=1, orphan=None))

        resp = await client.post("/api/anchoring", json={"statuses": {"t1": "anchored"}})
        assert resp.json() == {"t1": "anchored"}

        await asyncio.sleep(0.05)
        annotation = (await client.get("/api/annotations")).json()[0]
        assert annotation["orphan"] is False

    async def test_pending_status_rejected(self, client):
        resp = await client.post("/api/anchoring", json={"statuses": {"t1": "pending"}})
        assert resp.status_code == 422
