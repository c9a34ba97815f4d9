import json

import httpx
import pytest

from meetlingo.api.v1.routers import translate as translate_router
from meetlingo.services.translation import TranslationClient, TranslationEndpoint


pytestmark = pytest.mark.asyncio

TABLE = {"bonjour": "hello", "merci": "thank you"}


@pytest.fixture
def translator(monkeypatch):
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if body["text"] == "boom":
            return httpx.Response(503, json={"error": "overloaded"})
        return httpx.Response(200, json={"translated_text": TABLE.get(body["text"], body["text"]),
                                         "detected_source_language": "fr"})

    client = TranslationClient(
        [TranslationEndpoint(url="https://mt.test/translate")],
        transport=httpx.MockTransport(handler),
    )
    monkeypatch.setattr(translate_router, "get_translation_client", lambda: client)
    return client


async def test_translate_single_text(client, logged_in, translator):
    _, headers = logged_in
    resp = await client.post("/api/v1/translate", json={"text": "bonjour", "target": "en"}, headers=headers)

    assert resp.status_code == 200
    assert resp.json()["data"]["items"] == [
        {"text": "hello", "detectedLanguage": "fr", "degraded": False, "untranslated": False}
    ]


async def test_translate_batch_keeps_order(client, logged_in, translator):
    _, headers = logged_in
    resp = await client.post(
        "/api/v1/translate", json={"texts": ["merci", "bonjour", "Paris"], "target": "en"}, headers=headers,
    )

    items = resp.json()["data"]["items"]
    assert [i["text"] for i in items] == ["thank you", "hello", "Paris"]
    assert items[2]["untranslated"] is True


async def test_backend_failure_degrades_instead_of_failing(client, logged_in, translator):
    _, headers = logged_in
    resp = await client.post("/api/v1/translate", json={"text": "boom", "target": "en"}, headers=headers)

    assert resp.status_code == 200
    item = resp.json()["data"]["items"][0]
    assert item["text"] == "boom"
    assert item["degraded"] is True


async def test_empty_request_is_rejected(client, logged_in, translator):
    _, headers = logged_in
    resp = await client.post("/api/v1/translate", json={"target": "en"}, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Text cannot be empty"


async def test_languages(client, logged_in):
    _, headers = logged_in
    resp = await client.get("/api/v1/translate/languages", headers=headers)
    codes = {lang["code"] for lang in resp.json()["data"]["languages"]}
    assert {"en", "fr", "kn"} <= codes


async def test_translate_requires_auth(client, translator):
    resp = await client.post("/api/v1/translate", json={"text": "bonjour", "target": "en"})

    assert resp.status_code == 401
    assert resp.json()["detail"] == "AUTH_REQUIRED"


async def test_languages_require_auth(client):
    resp = await client.get("/api/v1/translate/languages")
    assert resp.status_code == 401


async def test_translate_rejects_forged_token(client, translator):
    resp = await client.post(
        "/api/v1/translate",
        json={"text": "bonjour", "target": "en"},
        headers={"Authorization": "Bearer not-a-session-token"},
    )

    assert resp.status_code == 401
    assert resp.json()["detail"] == "AUTH_INVALID_TOKEN"
