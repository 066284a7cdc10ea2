"""Multipart (image) behaviour of POST /chat."""

import base64

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 24
REPLY = {"choices": [{"message": {"content": "A cat."}}]}


def test_image_message_returns_envelope(api_key, make_client, upstream, multipart):
    stub = upstream(body=REPLY)
    client = make_client(stub)
    body, content_type = multipart(
        fields={"content": "describe this"}, files={"image": ("cat.png", PNG, "image/png")}
    )

    resp = client.post("/chat", content=body, headers={"Content-Type": content_type})

    assert resp.status_code == 200
    data = resp.json()
    assert data["aiResponse"] == "A cat."
    assert data["userMessage"]["content"] == "describe this"
    assert data["userMessage"]["sender"] == "user"
    assert data["userMessage"]["id"]
    assert data["userMessage"]["created_at"]
    assert data["userMessage"]["image_url"].startswith("data:image/png;base64,")


def test_vision_payload(api_key, make_client, upstream, multipart):
    stub = upstream(body=REPLY)
    client = make_client(stub)
    body, content_type = multipart(
        fields={"content": "describe this"}, files={"image": ("cat.png", PNG, "image/png")}
    )

    client.post("/chat", content=body, headers={"Content-Type": content_type})

    payload = stub.payloads[0]
    assert payload["model"] == "gpt-4o"
    assert payload["max_tokens"] == 1000
    assert len(payload["messages"]) == 1
    user = payload["messages"][0]
    assert user["role"] == "user"
    assert user["content"][0] == {"type": "text", "text": "describe this"}
    expected_uri = "data:image/png;base64," + base64.b64encode(PNG).decode()
    assert user["content"][1] == {"type": "image_url", "image_url": {"url": expected_uri}}


def test_image_without_text_and_with_system_prompt(api_key, make_client, upstream, multipart):
    stub = upstream(body=REPLY)
    client = make_client(stub)
    body, content_type = multipart(
        fields={"systemPrompt": "You are Alan Watts."},
        files={"image": ("cat.jpg", PNG, "image/jpeg")},
    )

    resp = client.post("/chat", content=body, headers={"Content-Type": content_type})

    assert resp.status_code == 200
    messages = stub.payloads[0]["messages"]
    assert messages[0] == {"role": "system", "content": "You are Alan Watts."}
    assert [part["type"] for part in messages[1]["content"]] == ["image_url"]
    assert resp.json()["userMessage"]["content"] == ""


def test_non_image_file_rejected(api_key, make_client, upstream, multipart):
    stub = upstream(body=REPLY)
    client = make_client(stub)
    body, content_type = multipart(
        fields={"content": "read this"},
        files={"image": ("doc.pdf", b"%PDF-1.4", "application/pdf")},
    )

    resp = client.post("/chat", content=body, headers={"Content-Type": content_type})

    assert resp.status_code == 400
    assert resp.json() == {"error": "No valid image uploaded."}
    assert stub.requests == []


def test_missing_image_rejected(api_key, make_client, upstream, multipart):
    stub = upstream(body=REPLY)
    client = make_client(stub)
    body, content_type = multipart(fields={"content": "describe this"})

    resp = client.post("/chat", content=body, headers={"Content-Type": content_type})

    assert resp.status_code == 400
    assert resp.json() == {"error": "No valid image uploaded."}
    assert stub.requests == []


def test_more_than_one_file_rejected(api_key, make_client, upstream, multipart):
    stub = upstream(body=REPLY)
    client = make_client(stub)
    body, content_type = multipart(
        files={
            "image": ("a.png", PNG, "image/png"),
            "other": ("b.png", PNG, "image/png"),
        }
    )

    resp = client.post("/chat", content=body, headers={"Content-Type": content_type})

    assert resp.status_code == 400
    assert stub.requests == []


def test_missing_boundary_rejected(api_key, make_client, upstream):
    stub = upstream(body=REPLY)
    client = make_client(stub)

    resp = client.post(
        "/chat", content=b"garbage", headers={"Content-Type": "multipart/form-data"}
    )

    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid multipart body."}
    assert stub.requests == []


def test_upstream_error_on_image_path(api_key, make_client, upstream, multipart):
    stub = upstream(status_code=413, text="image too large")
    client = make_client(stub)
    body, content_type = multipart(files={"image": ("cat.png", PNG, "image/png")})

    resp = client.post("/chat", content=body, headers={"Content-Type": content_type})

    assert resp.status_code == 413
    assert resp.json() == {"error": "image too large"}


def test_method_checked_before_body(api_key, make_client, upstream, multipart):
    stub = upstream(body=REPLY)
    client = make_client(stub)
    body, content_type = multipart(files={"image": ("doc.pdf", b"%PDF", "application/pdf")})

    resp = client.request("PUT", "/chat", content=body, headers={"Content-Type": content_type})

    assert resp.status_code == 405


def test_file_outside_image_field_rejected(api_key, make_client, upstream, multipart):
    stub = upstream(body=REPLY)
    client = make_client(stub)
    body, content_type = multipart(
        fields={"content": "describe this"}, files={"photo": ("a.png", PNG, "image/png")}
    )

    resp = client.post("/chat", content=body, headers={"Content-Type": content_type})

    assert resp.status_code == 400
    assert resp.json() == {"error": "No valid image uploaded."}
    assert stub.requests == []


def test_extra_file_beside_image_rejected(api_key, make_client, upstream, multipart):
    stub = upstream(body=REPLY)
    client = make_client(stub)
    body, content_type = multipart(
        files={
            "image": ("cat.png", PNG, "image/png"),
            "attachment": ("notes.txt", b"notes", "text/plain"),
        }
    )

    resp = client.post("/chat", content=body, headers={"Content-Type": content_type})

    assert resp.status_code == 400
    assert resp.json() == {"error": "No valid image uploaded."}
    assert stub.requests == []
