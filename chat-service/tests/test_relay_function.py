"""Serverless entry point: host event dicts in, host result dicts out."""

import base64
import json

from persona_chat.relay.function import handler, to_event, tts_handler


def _multipart_event(multipart, files, method="POST"):
    body, content_type = multipart(fields={"content": "look"}, files=files)
    return {
        "httpMethod": method,
        "path": "/.netlify/functions/chat",
        "headers": {"Content-Type": content_type},
        "body": base64.b64encode(body).decode(),
        "isBase64Encoded": True,
    }


def test_get_is_405(api_key):
    result = handler({"httpMethod": "GET", "headers": {}, "body": "anything"}, None)

    assert result["statusCode"] == 405
    assert json.loads(result["body"]) == {"error": "Method Not Allowed"}


def test_missing_credential_is_500(no_api_key):
    event = {
        "httpMethod": "POST",
        "headers": {"content-type": "application/json"},
        "body": json.dumps({"messages": []}),
    }

    result = handler(event, None)

    assert result["statusCode"] == 500
    assert "error" in json.loads(result["body"])


def test_invalid_json(api_key):
    event = {"httpMethod": "POST", "headers": {}, "body": "{nope"}

    result = handler(event)

    assert result["statusCode"] == 400
    assert json.loads(result["body"]) == {"error": "Invalid JSON"}


def test_missing_messages(api_key):
    event = {"httpMethod": "POST", "headers": {}, "body": json.dumps({"systemPrompt": "x"})}

    result = handler(event)

    assert result["statusCode"] == 400
    assert json.loads(result["body"]) == {"error": "Missing or invalid messages array."}


def test_base64_multipart_body_is_decoded(api_key, multipart):
    event = _multipart_event(multipart, {"image": ("doc.pdf", b"%PDF-1.4", "application/pdf")})

    result = handler(event)

    assert result["statusCode"] == 400
    assert json.loads(result["body"]) == {"error": "No valid image uploaded."}


def test_to_event_normalizes_headers():
    event = to_event(
        {
            "httpMethod": "POST",
            "headers": {"Content-Type": "application/json"},
            "body": "{}",
            "isBase64Encoded": False,
        }
    )

    assert event.method == "POST"
    assert event.content_type == "application/json"
    assert event.body == b"{}"
    assert event.is_base64_encoded is False


def test_tts_handler_rejects_empty_text(api_key):
    event = {"httpMethod": "POST", "headers": {}, "body": json.dumps({"text": "  "})}

    result = tts_handler(event)

    assert result["statusCode"] == 400
    assert json.loads(result["body"]) == {"error": "Missing text."}
