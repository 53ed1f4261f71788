"""
HTTP-level tests for the FastAPI routers with collaborators overridden.
"""

import json

import httpx

from app.exceptions import SourceUnavailable
from app.main import app
from app.routers.proxy import get_http_client
from app.services.images import get_relay
from app.services.jotform import get_source
from app.services.store import get_store
from conftest import FakeRelay, FakeSource, FakeStore, make_record, make_submission


def use(store=None, source=None, relay=None):
    if store is not None:
        app.dependency_overrides[get_store] = lambda: store
    if source is not None:
        app.dependency_overrides[get_source] = lambda: source
    if relay is not None:
        app.dependency_overrides[get_relay] = lambda: relay


class TestCors:
    def test_options_preflight_is_empty_200(self, client):
        response = client.options("/like")

        assert response.status_code == 200
        assert response.content == b""
        assert response.headers["Access-Control-Allow-Origin"] == "*"

    def test_cross_origin_get_is_allowed(self, client):
        use(store=FakeStore())

        response = client.get("/submissions", headers={"Origin": "https://gallery.example"})

        assert response.headers["access-control-allow-origin"] in ("*", "https://gallery.example")


class TestLike:
    def test_increments_likes(self, client):
        store = FakeStore([make_record("A", likes=3)])
        use(store=store)

        response = client.post("/like", json={"submissionId": "A"})

        assert response.status_code == 200
        assert response.json() == {"success": True, "likes": 4}
        assert store.records[0].likes == 4

    def test_unknown_submission_is_404(self, client):
        use(store=FakeStore([make_record("A")]))

        response = client.post("/like", json={"submissionId": "Z"})

        assert response.status_code == 404
        assert response.json() == {"error": "Submission not found"}

    def test_missing_id_is_400(self, client):
        use(store=FakeStore())

        response = client.post("/like", json={})

        assert response.status_code == 400
        assert "submissionId" in response.json()["error"]

    def test_invalid_body_is_400(self, client):
        use(store=FakeStore())

        response = client.post("/like", content=b"not json", headers={"content-type": "application/json"})

        assert response.status_code == 400

    def test_wrong_method_is_405(self, client):
        response = client.get("/like")

        assert response.status_code == 405
        assert "error" in response.json()

    def test_store_failure_is_500(self, client):
        use(store=FakeStore(unavailable=True))

        response = client.post("/like", json={"submissionId": "A"})

        assert response.status_code == 500
        assert response.json()["error"] == "JSONBin fetch: 503"


class TestSubmissions:
    def test_lists_visible_records_without_caching(self, client):
        use(store=FakeStore([make_record("A"), make_record("B", image_url=""), make_record(None, name="Legacy")]))

        response = client.get("/submissions")

        assert response.status_code == 200
        assert [item["submissionId"] for item in response.json()] == ["A", None]
        assert "no-store" in response.headers["Cache-Control"]

    def test_store_error_is_passed_through(self, client):
        use(store=FakeStore(unavailable=True))

        response = client.get("/submissions")

        assert response.status_code == 503
        assert response.json() == {"error": "JSONBin error", "detail": "down"}
        assert "no-cache" in response.headers["Cache-Control"]

    def test_post_is_405(self, client):
        assert client.post("/submissions").status_code == 405


class TestSync:
    def test_returns_summary(self, client):
        store = FakeStore([make_record("stale")])
        source = FakeSource([make_submission("A"), make_submission("B", file_url="http://x/b.png", created_at="2024-02-01 00:00:00")])
        use(store=store, source=source, relay=FakeRelay())

        response = client.get("/sync", params={"offset": 0, "limit": 1})

        assert response.status_code == 200
        body = response.json()
        assert body["processed"] == 1
        assert body["removed"] == 1
        assert body["totalMissing"] == 2
        assert body["hasMore"] is True
        assert body["nextOffset"] == 1
        assert store.ids() == ["A"]

    def test_default_batch_size(self, client):
        use(store=FakeStore(), source=FakeSource([]), relay=FakeRelay())

        body = client.get("/sync").json()

        assert body["hasMore"] is False
        assert "nextOffset" not in body

    def test_source_failure_is_500(self, client):
        use(store=FakeStore(), source=FakeSource(error=SourceUnavailable("Jotform API error: 502")), relay=FakeRelay())

        response = client.get("/sync")

        assert response.status_code == 500
        assert response.json() == {"error": "Jotform API error: 502"}

    def test_partial_failure_is_still_200(self, client):
        source = FakeSource([make_submission("A", file_url="http://x/broken.png")])
        use(store=FakeStore(), source=source, relay=FakeRelay(failing={"http://x/broken.png"}))

        response = client.get("/sync")

        assert response.status_code == 200
        assert response.json()["failed"] == 1
        assert response.json()["errors"][0].startswith("A: ")

    def test_invalid_limit_is_400(self, client):
        use(store=FakeStore(), source=FakeSource([]), relay=FakeRelay())

        assert client.get("/sync", params={"limit": 0}).status_code == 400
        assert client.get("/sync", params={"offset": -1}).status_code == 400


class TestWebhook:
    def test_json_payload_is_saved(self, client):
        store = FakeStore([make_record("old")])
        use(store=store, relay=FakeRelay())
        payload = {
            "submissionID": "A",
            "rawRequest": json.dumps({"q3_nomePagina": "Mario", "caricaFile": ["https://www.jotform.com/uploads/img.png"]}),
        }

        response = client.post("/webhook", json=payload)

        assert response.status_code == 200
        assert response.json() == {"success": True, "imageUrl": "https://i.ibb.co/img.png"}
        assert store.ids() == ["A", "old"]
        assert store.records[0].name == "Mario"

    def test_multipart_payload(self, client):
        store = FakeStore()
        use(store=store, relay=FakeRelay())

        response = client.post(
            "/webhook",
            data={
                "submissionID": "B",
                "rawRequest": json.dumps({"q3_nomePagina": "Luigi", "caricaFile": ["https://www.jotform.com/uploads/l.png"]}),
            },
            files={"attachment": ("note.txt", b"ignored", "text/plain")},
        )

        assert response.status_code == 200
        assert store.ids() == ["B"]

    def test_urlencoded_flat_fields(self, client):
        store = FakeStore()
        use(store=store, relay=FakeRelay())

        response = client.post(
            "/webhook",
            data={"q3_nomePagina": "Peach", "q4_caricaFile[0]": "https://eu.jotform.com/uploads/p.png"},
        )

        assert response.status_code == 200
        assert store.records[0].name == "Peach"
        assert store.records[0].submission_id is None

    def test_duplicate_is_skipped(self, client):
        store = FakeStore([make_record("A")])
        use(store=store, relay=FakeRelay())

        response = client.post("/webhook", json={"submissionID": "A", "q4_caricaFile[0]": "https://x/a.png"})

        assert response.status_code == 200
        assert response.json() == {"success": True, "skipped": True, "reason": "duplicate"}
        assert store.writes == 0

    def test_missing_image_is_400(self, client):
        use(store=FakeStore(), relay=FakeRelay())

        response = client.post("/webhook", json={"q3_nomePagina": "Mario"})

        assert response.status_code == 400
        assert response.json() == {"error": "No image URL found in payload"}

    def test_relay_failure_is_500(self, client):
        use(store=FakeStore(), relay=FakeRelay(failing={"https://x/a.png"}))

        response = client.post("/webhook", json={"q4_caricaFile[0]": "https://x/a.png"})

        assert response.status_code == 500
        assert "non-image" in response.json()["error"]

    def test_get_is_405(self, client):
        assert client.get("/webhook").status_code == 405


class TestProxy:
    def use_upstream(self, handler):
        app.dependency_overrides[get_http_client] = lambda: httpx.Client(transport=httpx.MockTransport(handler))

    def test_missing_url_is_400(self, client):
        assert client.get("/proxy").status_code == 400

    def test_foreign_host_is_403(self, client):
        response = client.get("/proxy", params={"url": "https://evil.example/a.png"})

        assert response.status_code == 403

    def test_streams_image_with_long_cache(self, client):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, content=b"\x89PNG", headers={"content-type": "image/png"})

        self.use_upstream(handler)

        response = client.get("/proxy", params={"url": "https://www.jotform.com/uploads/a.png"})

        assert response.status_code == 200
        assert response.content == b"\x89PNG"
        assert response.headers["content-type"] == "image/png"
        assert response.headers["Cache-Control"] == "public, max-age=86400"
        assert seen[0].headers["Referer"] == "https://www.jotform.com/"

    def test_upstream_error_is_passed_through(self, client):
        self.use_upstream(lambda request: httpx.Response(503))

        response = client.get("/proxy", params={"url": "https://eu.jotform.com/uploads/a.png"})

        assert response.status_code == 503
        assert response.json() == {"error": "Upstream error: 503"}

    def test_oversized_image_redirects(self, client, monkeypatch):
        monkeypatch.setattr("app.routers.proxy.PROXY_MAX_BYTES", 4)
        self.use_upstream(lambda request: httpx.Response(200, content=b"0123456789", headers={"content-type": "image/jpeg"}))

        response = client.get(
            "/proxy",
            params={"url": "https://www.jotform.com/uploads/big.jpg"},
            follow_redirects=False,
        )

        assert response.status_code == 302
        assert response.headers["location"] == "https://www.jotform.com/uploads/big.jpg"
