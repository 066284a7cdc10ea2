"""JSON-mode behaviour of POST /chat."""

import httpx
import pytest

COMPLETION = {"choices": [{"message": {"content": "hello"}}]}


class TestTextRelay:
    """Valid JSON requests are forwarded and the upstream body is passed through."""

    def test_passthrough_of_upstream_body(self, api_key, make_client, upstream):
        stub = upstream(body=COMPLETION)
        client = make_client(stub)

        resp = client.post("/chat", json={"messages": [{"role": "user", "content": "hi"}]})

        assert resp.status_code == 200
        assert resp.json() == COMPLETION
        assert len(stub.requests) == 1

    def test_upstream_request_shape(self, api_key, make_client, upstream):
        stub = upstream(body=COMPLETION)
        client = make_client(stub)

        client.post("/chat", json={"messages": [{"role": "user", "content": "hi"}]})

        request = stub.requests[0]
        assert request.url == "https://api.openai.com/v1/chat/completions"
        assert request.headers["authorization"] == f"Bearer {api_key}"
        payload = stub.payloads[0]
        assert payload["model"] == "gpt-3.5-turbo"
        assert payload["temperature"] == 0.7
        assert "max_tokens" not in payload

    def test_messages_unchanged_without_system_prompt(self, api_key, make_client, upstream):
        stub = upstream(body=COMPLETION)
        client = make_client(stub)
        messages = [
            {"role": "user", "content": "Who are you?"},
            {"role": "assistant", "content": "A physicist."},
            {"role": "user", "content": "Tell me more."},
        ]

        client.post("/chat", json={"messages": messages})

        assert stub.payloads[0]["messages"] == messages

    def test_system_prompt_is_first_and_unique(self, api_key, make_client, upstream):
        stub = upstream(body=COMPLETION)
        client = make_client(stub)
        messages = [
            {"role": "system", "content": "stale prompt"},
            {"role": "user", "content": "hi"},
            {"role": "assistant", "content": "hello"},
            {"role": "user", "content": "and?"},
        ]

        client.post("/chat", json={"messages": messages, "systemPrompt": "You are Einstein."})

        sent = stub.payloads[0]["messages"]
        assert sent[0] == {"role": "system", "content": "You are Einstein."}
        assert [m for m in sent[1:] if m["role"] == "system"] == []
        assert sent[1:] == messages[1:]

    def test_empty_system_prompt_is_ignored(self, api_key, make_client, upstream):
        stub = upstream(body=COMPLETION)
        client = make_client(stub)
        messages = [{"role": "user", "content": "hi"}]

        client.post("/chat", json={"messages": messages, "systemPrompt": ""})

        assert stub.payloads[0]["messages"] == messages

    def test_identical_requests_give_identical_responses(self, api_key, make_client, upstream):
        stub = upstream(body=COMPLETION)
        client = make_client(stub)
        body = {"messages": [{"role": "user", "content": "hi"}], "systemPrompt": "Be brief."}

        first = client.post("/chat", json=body)
        second = client.post("/chat", json=body)

        assert first.status_code == second.status_code == 200
        assert first.json() == second.json()
        assert stub.payloads[0] == stub.payloads[1]


class TestTextRejections:
    """Malformed requests are rejected before any upstream call."""

    def test_missing_messages(self, api_key, make_client, upstream):
        stub = upstream(body=COMPLETION)
        client = make_client(stub)

        resp = client.post("/chat", json={"systemPrompt": "x"})

        assert resp.status_code == 400
        assert resp.json() == {"error": "Missing or invalid messages array."}
        assert stub.requests == []

    @pytest.mark.parametrize("messages", ["hi", 3, {"role": "user"}, None, ["hi"]])
    def test_non_array_messages(self, api_key, make_client, upstream, messages):
        stub = upstream(body=COMPLETION)
        client = make_client(stub)

        resp = client.post("/chat", json={"messages": messages})

        assert resp.status_code == 400
        assert "error" in resp.json()
        assert stub.requests == []

    def test_json_that_is_not_an_object(self, api_key, make_client, upstream):
        stub = upstream(body=COMPLETION)
        client = make_client(stub)

        resp = client.post("/chat", json=[{"role": "user", "content": "hi"}])

        assert resp.status_code == 400
        assert resp.json() == {"error": "Missing or invalid messages array."}

    def test_invalid_json(self, api_key, make_client, upstream):
        stub = upstream(body=COMPLETION)
        client = make_client(stub)

        resp = client.post(
            "/chat", content=b"{not json", headers={"Content-Type": "application/json"}
        )

        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid JSON"}
        assert stub.requests == []

    @pytest.mark.parametrize("method", ["GET", "PUT", "DELETE", "PATCH"])
    def test_non_post_methods(self, api_key, make_client, upstream, method):
        stub = upstream(body=COMPLETION)
        client = make_client(stub)

        resp = client.request(method, "/chat", json={"messages": []})

        assert resp.status_code == 405
        assert resp.json() == {"error": "Method Not Allowed"}
        assert stub.requests == []

    def test_missing_credential(self, no_api_key, make_client, upstream):
        stub = upstream(body=COMPLETION)
        client = make_client(stub)

        resp = client.post("/chat", json={"messages": [{"role": "user", "content": "hi"}]})

        assert resp.status_code == 500
        assert "error" in resp.json()
        assert stub.requests == []

    def test_credential_is_read_per_request(self, monkeypatch, make_client, upstream):
        stub = upstream(body=COMPLETION)
        client = make_client(stub)
        body = {"messages": [{"role": "user", "content": "hi"}]}

        monkeypatch.setenv("OPENAI_API_KEY", "")
        assert client.post("/chat", json=body).status_code == 500

        monkeypatch.setenv("OPENAI_API_KEY", "sk-rotated")
        assert client.post("/chat", json=body).status_code == 200
        assert stub.requests[0].headers["authorization"] == "Bearer sk-rotated"


class TestUpstreamFailures:
    """Provider failures are surfaced, never translated."""

    @pytest.mark.parametrize("status", [400, 401, 429, 500, 503])
    def test_status_and_body_relayed_verbatim(self, api_key, make_client, upstream, status):
        text = '{"error": {"message": "Rate limit reached", "type": "requests"}}'
        stub = upstream(status_code=status, text=text)
        client = make_client(stub)

        resp = client.post("/chat", json={"messages": [{"role": "user", "content": "hi"}]})

        assert resp.status_code == status
        assert resp.json()["error"] == text
        assert len(stub.requests) == 1

    def test_network_failure_is_500(self, api_key, make_client, upstream):
        stub = upstream(error=httpx.ConnectError("connection refused"))
        client = make_client(stub)

        resp = client.post("/chat", json={"messages": [{"role": "user", "content": "hi"}]})

        assert resp.status_code == 500
        assert resp.json() == {"error": "connection refused"}
        assert len(stub.requests) == 1


def test_health(make_client, upstream):
    resp = make_client(upstream()).get("/health")

    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


def test_form_encoded_body_gets_relay_error(api_key, make_client, upstream):
    stub = upstream()
    client = make_client(stub)

    resp = client.post("/chat", data={"messages": "hi"})

    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid JSON"}
    assert stub.requests == []


def test_cors_preflight_answered_by_middleware(make_client, upstream):
    stub = upstream()
    client = make_client(stub)

    resp = client.options(
        "/chat",
        headers={"Origin": "http://localhost:5173", "Access-Control-Request-Method": "POST"},
    )

    assert resp.status_code == 200
    assert resp.headers["access-control-allow-origin"] == "http://localhost:5173"
    assert stub.requests == []


def test_plain_options_is_405(api_key, make_client, upstream):
    resp = make_client(upstream()).options("/chat")

    assert resp.status_code == 405
    assert resp.json() == {"error": "Method Not Allowed"}
