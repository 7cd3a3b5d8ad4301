import base64

from app.services.ai_enrichment.registry import PREVIEW_FALLBACK
from app.utils.identifiers import PROBLEM_ID_PATTERN


def test_preview_returns_suggestions(client, enrichment_client, make_provider, mock_db):
    provider = make_provider(text="Immediate action needed: exposed cables")
    enrichment_client.provider = provider

    response = client.post(
        "/api/ai-suggestions",
        json={"title": "Exposed cables", "description": "Near the school", "category": "SAFETY"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["suggestions"] == "Immediate action needed: exposed cables"
    assert body["severity"] == "HIGH"
    assert PROBLEM_ID_PATTERN.match(body["problemId"])
    assert "timestamp" in body
    assert "Similar Cases" in provider.calls[0][0]
    assert list(mock_db.collection("problems").stream()) == []


def test_preview_with_image(client, enrichment_client, make_provider):
    provider = make_provider()
    enrichment_client.provider = provider
    encoded = base64.b64encode(b"png bytes").decode()

    response = client.post(
        "/api/ai-suggestions",
        json={"title": "t", "description": "d", "category": "c",
              "imageBase64": f"data:image/png;base64,{encoded}"},
    )

    assert response.status_code == 200
    image = provider.calls[0][1]
    assert image.data == b"png bytes"
    assert image.mime_type == "image/png"


def test_preview_fallback_on_timeout(client, enrichment_client, make_provider):
    enrichment_client.provider = make_provider(hang=True)
    enrichment_client.timeout_seconds = 0.2

    response = client.post("/api/ai-suggestions", json={"title": "t", "description": "d"})

    assert response.status_code == 200
    assert response.json()["suggestions"] == PREVIEW_FALLBACK
    assert response.json()["severity"] == "MEDIUM"
