import os

os.environ.pop("OPENAI_API_KEY", None)

import pytest
from fastapi.testclient import TestClient

from redflag import main

client = TestClient(main.app)

LOCKED = "Your account will be locked in 30 minutes. Verify immediately: https://bit.ly/lock-verify"


def test_health():
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"ok": True, "llm_enabled": False}


def test_analyze():
    res = client.post("/analyze", json={"kind": "text", "text": LOCKED})
    assert res.status_code == 200
    body = res.json()
    assert body["risk_score"] == 50
    assert body["verdict"] == "suspicious"
    assert set(body) == {
        "risk_score", "verdict", "tactics", "suspicious_spans", "extracted",
        "attack_types", "sender_analysis", "next_steps", "safe_reply", "summary",
    }
    for span in body["suspicious_spans"]:
        assert LOCKED[span["start"]:span["end"]].lower() in ("locked", "immediately")


def test_kind_defaults_to_text():
    res = client.post("/analyze", json={"text": LOCKED})
    assert res.status_code == 200
    assert res.json()["risk_score"] == 50


def test_camel_case_fields():
    text = "From: Payroll <payroll.team@gmail.com>\nPlease update your direct deposit banking details today."
    res = client.post("/analyze", json={
        "kind": "email",
        "emailMode": "work",
        "senderEmail": "payroll.team@gmail.com",
        "text": text,
    })
    assert res.status_code == 200
    body = res.json()
    assert body["sender_analysis"]["sender_email"] == "payroll.team@gmail.com"
    assert body["sender_analysis"]["domain"] == "gmail.com"
    assert body["risk_score"] >= 50


@pytest.mark.parametrize("payload", [
    {"kind": "text", "text": "hi"},
    {"kind": "text", "text": "      "},
    {"kind": "fax", "text": "Your account is locked."},
    {"kind": "email", "emailMode": "school", "text": "Your account is locked."},
    {"kind": "text"},
])
def test_invalid_requests(payload):
    res = client.post("/analyze", json=payload)
    assert res.status_code == 422


def test_rules_listing_and_reload():
    listed = client.get("/rules")
    assert listed.status_code == 200
    ids = [r["id"] for r in listed.json()]
    assert "otp" in ids

    reloaded = client.post("/rules/reload")
    assert reloaded.status_code == 200
    assert reloaded.json() == {"reloaded": True, "count": len(ids)}


def test_unexpected_error_returns_generic_500(monkeypatch):
    def boom(req):
        raise ValueError("internal detail")

    monkeypatch.setattr(main.analyzer, "analyze", boom)
    res = TestClient(main.app, raise_server_exceptions=False).post("/analyze", json={"text": LOCKED})
    assert res.status_code == 500
    assert res.json() == {"error": "Server error"}
