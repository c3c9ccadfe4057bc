from fastapi.testclient import TestClient

from conftest import TEST_EMBEDDING_DIM, RecordingProvider


def test_embed_returns_vector_of_model_dimension(
    client: TestClient, provider: RecordingProvider
) -> None:
    resp = client.post("/embed", json={"text": "hello"})

    assert resp.status_code == 200
    embedding = resp.json()["embedding"]
    assert len(embedding) == TEST_EMBEDDING_DIM
    assert all(isinstance(value, float) for value in embedding)
    assert provider.embed_calls == [("text-embedding-ada-002", "hello")]


def test_embed_is_deterministic_for_stub_provider(client: TestClient) -> None:
    first = client.post("/embed", json={"text": "same text"}).json()
    second = client.post("/embed", json={"text": "same text"}).json()

    assert first == second


def test_embed_requires_text(client: TestClient, provider: RecordingProvider) -> None:
    for payload in ({}, {"text": ""}, {"text": ["a"]}):
        resp = client.post("/embed", json=payload)
        assert resp.status_code == 400
        assert resp.json()["error"] == "Text is required"

    assert provider.call_count == 0


def test_embed_rejects_non_object_body(client: TestClient) -> None:
    resp = client.post("/embed", json=["hello"])

    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid JSON body"
