"""HTTP surface: upload validation, analysis, chat, health, CORS and error mapping."""

import base64
import json

from fastapi.testclient import TestClient

from backend import config, upload
from backend.errors import ProviderError
from backend.main import app
from backend.normalize import DEFAULT_OPENING_LINE

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 2040

LEGACY_REPLY = (
    '```json\n{"dominantColors":["navy","cream"],"complementaryColors":["beige"],'
    '"seasonalRecommendations":"works well in fall","styleSuggestions":["pair with boots"],'
    '"colorPsychology":"calm"}\n```'
)


def _upload(client, data=PNG_BYTES, content_type="image/png", filename="look.png"):
    return client.post("/api/analyze-fashion", files={"image": (filename, data, content_type)})


def test_health(client):
    resp = client.get("/api/health")

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "OK"
    assert body["message"] == "Fashion GPT API is running"
    assert "timestamp" in body


def test_analyze_png(client, provider):
    provider.replies = [LEGACY_REPLY]

    resp = _upload(client)

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["analysis"]["dominantColors"] == ["navy", "cream"]
    assert body["analysis"]["openingLine"] == DEFAULT_OPENING_LINE
    assert len(body["analysis"]["suggestedReplies"]) == 3
    assert "rawResponse" not in body["analysis"]
    assert body["originalImage"] == "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode()
    assert [t["role"] for t in body["history"]] == ["user", "model"]

    assert len(provider.calls) == 1
    parts = provider.calls[0][0].parts
    assert "Analyze this fashion image" in parts[0].text
    assert parts[1].inline_data.mime_type == "image/png"
    assert parts[1].inline_data.data == PNG_BYTES


def test_analyze_unparseable_reply_is_still_success(client, provider):
    provider.replies = ["I love this outfit!"]

    resp = _upload(client)

    assert resp.status_code == 200
    analysis = resp.json()["analysis"]
    assert analysis["rawResponse"] == "I love this outfit!"
    assert analysis["dominantColors"] == []


def test_analyze_with_nested_lists_and_numeric_confidence(client, provider):
    provider.replies = [{
        "skinToneAnalysis": {"detected": True, "undertone": "cool", "confidence": 0.85},
        "colorAnalysis": {
            "imagePalette": [{"name": "navy", "hex": "#1e3a8a"}],
            "colorPsychology": {"emotionalImpact": ["calm", "trust"]},
        },
        "styleGuide": {"seasonalFit": {"bestSeasons": ["fall"]}},
        "conversation": {"openingLine": "Love the navy!"},
    }]

    resp = _upload(client)

    assert resp.status_code == 200
    analysis = resp.json()["analysis"]
    assert analysis["skinToneAnalysis"]["confidence"] == "0.85"
    assert analysis["colorPsychology"] == {"emotionalImpact": ["calm", "trust"]}
    assert analysis["dominantColors"] == ["navy"]
    assert "Color Psychology: calm, trust" in resp.json()["history"][1]["text"]


def test_non_image_rejected_before_provider_call(client, provider):
    resp = _upload(client, data=b"name,color\nshirt,navy\n", content_type="text/csv", filename="look.csv")

    assert resp.status_code == 400
    assert resp.json()["error"] == "Only image files are allowed!"
    assert provider.calls == []


def test_oversized_image_rejected(client, provider):
    resp = _upload(client, data=b"\x00" * (config.MAX_UPLOAD_BYTES + 1))

    assert resp.status_code == 413
    assert provider.calls == []


def test_oversized_body_rejected_before_multipart_parsing(client, provider, monkeypatch):
    async def must_not_parse(file, max_bytes=None):
        raise AssertionError("multipart body should not have been read")

    monkeypatch.setattr(config, "MAX_UPLOAD_BYTES", 1024)
    monkeypatch.setattr(config, "MULTIPART_OVERHEAD_BYTES", 1024)
    monkeypatch.setattr(upload, "read_image", must_not_parse)

    resp = client.post(
        "/api/analyze-fashion",
        files={"image": ("look.png", PNG_BYTES * 4, "image/png")},
        headers={"Origin": "http://localhost:3000"},
    )

    assert resp.status_code == 413
    assert resp.json() == {"error": "File too large", "details": "Images must be at most 1024 bytes"}
    assert resp.headers["access-control-allow-origin"] == "*"
    assert provider.calls == []


def test_empty_image_rejected(client, provider):
    resp = _upload(client, data=b"")

    assert resp.status_code == 400
    assert provider.calls == []


def test_missing_image_field(client, provider):
    resp = client.post("/api/analyze-fashion", data={"note": "no file"})

    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid request"
    assert provider.calls == []


def test_missing_api_key_is_config_error(monkeypatch):
    monkeypatch.setattr(config, "GEMINI_API_KEY", "")
    app.dependency_overrides.clear()

    with TestClient(app) as c:
        resp = c.post("/api/analyze-fashion", files={"image": ("look.png", PNG_BYTES, "image/png")})

    assert resp.status_code == 500
    assert resp.json()["error"] == "Gemini API key not configured"


def test_provider_error_surfaces_details(client, provider):
    provider.replies = [ProviderError("Gemini request failed", status=429, body={"error": "quota"})]

    resp = _upload(client)

    assert resp.status_code == 500
    body = resp.json()
    assert body["error"] == "Gemini request failed"
    assert body["details"] == 'API Error: 429 - {"error": "quota"}'


def test_chat_with_history_ending_in_user_turn(client, provider):
    provider.replies = [json.dumps({"answer": "X", "followUpQuestion": "Y", "suggestedReplies": ["A", "B"]})]
    history = [
        {"role": "user", "text": "Analyze this image and give me fashion advice."},
        {"role": "model", "text": "Dominant Colors: navy"},
        {"role": "user", "text": "What about shoes?"},
    ]

    resp = client.post("/api/chat", json={"history": history})

    assert resp.status_code == 200
    body = resp.json()
    assert body["answer"] == "X"
    assert body["followUpQuestion"] == "Y"
    assert body["suggestedReplies"] == ["A", "B"]
    assert body["history"] == [*history, {"role": "model", "text": "X"}]
    assert len(provider.calls) == 1


def test_chat_with_message_and_provider_style_turns(client, provider):
    provider.replies = [json.dumps({"answer": "Try loafers.", "followUpQuestion": "Formal?", "suggestedReplies": []})]
    history = [
        {"role": "user", "parts": [{"text": "Analyze this image and give me fashion advice."}]},
        {"role": "model", "parts": [{"text": "Dominant Colors: navy"}]},
    ]

    resp = client.post("/api/chat", json={"history": history, "message": "Shoes?"})

    assert resp.status_code == 200
    turns = resp.json()["history"]
    assert [t["role"] for t in turns] == ["user", "model", "user", "model"]
    assert turns[2]["text"] == "Shoes?"
    assert turns[3]["text"] == "Try loafers."


def test_chat_reply_missing_follow_up_falls_back(client, provider):
    provider.replies = ['{"answer": "X", "suggestedReplies": ["A"]}']

    resp = client.post("/api/chat", json={"history": [{"role": "user", "text": "Hi"}]})

    assert resp.status_code == 200
    body = resp.json()
    assert body["answer"] == '{"answer": "X", "suggestedReplies": ["A"]}'
    assert body["followUpQuestion"]
    assert len(body["suggestedReplies"]) == 3


def test_chat_requires_history(client, provider):
    resp = client.post("/api/chat", json={})

    assert resp.status_code == 400
    assert provider.calls == []


def test_chat_rejects_history_ending_with_model(client, provider):
    resp = client.post("/api/chat", json={"history": [{"role": "model", "text": "Hello"}]})

    assert resp.status_code == 400
    assert provider.calls == []


def test_models(client):
    resp = client.get("/api/models")

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "models": ["models/gemini-2.5-flash"]}


def test_cors_preflight(client):
    resp = client.options(
        "/api/analyze-fashion",
        headers={"Origin": "http://localhost:3000", "Access-Control-Request-Method": "POST"},
    )

    assert resp.status_code == 200
    assert resp.headers["access-control-allow-origin"] == "*"