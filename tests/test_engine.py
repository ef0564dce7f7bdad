from redflag.feature_extractors import extract_entities
from redflag.rules import RuleEngine, blend_scores, clamped_sum, map_to_verdict
import os
import pytest

RULES_PATH = os.path.join(os.path.dirname(__file__), "..", "rules", "rules.yaml")


def apply(engine, text):
    return engine.apply(text, extract_entities(text))


@pytest.fixture(scope="module")
def engine():
    return RuleEngine(RULES_PATH)


def test_rule_load(engine):
    assert len(engine.rules) > 0
    assert {"otp", "credential", "virality", "get_rich"} <= {r["id"] for r in engine.rules}


def test_missing_rules_file_raises(tmp_path):
    with pytest.raises(RuntimeError):
        RuleEngine(str(tmp_path / "nope.yaml"))


def test_clamped_sum():
    assert clamped_sum([16, 10, 10]) == 36
    assert clamped_sum([26, 22, 22, 18, 16, 16]) == 100
    assert clamped_sum([]) == 0


def test_verdict_mapping():
    assert map_to_verdict(0) == "harmless"
    assert map_to_verdict(34) == "harmless"
    assert map_to_verdict(35) == "suspicious"
    assert map_to_verdict(69) == "suspicious"
    assert map_to_verdict(70) == "dangerous"
    assert map_to_verdict(100) == "dangerous"


def test_blend_scores_weights_model_55_45():
    assert blend_scores(100, 0) == 55
    assert blend_scores(0, 100) == 45
    assert blend_scores(90, 46) == 70


def test_locked_account_scenario(engine):
    text = "Your account will be locked in 30 minutes. Verify immediately: https://bit.ly/lock-verify"
    result = apply(engine, text)
    assert result.score == 46
    assert set(result.hit_ids) == {"urls_present", "shortened_link", "urgency", "fear"}
    names = [t["name"] for t in result.tactics]
    assert "Urgency" in names and "Fear" in names
    assert map_to_verdict(result.score) == "suspicious"


def test_code_request_scenario(engine):
    result = apply(engine, "Reply with the verification code we sent. Your OTP expires soon.")
    assert result.score == 26
    code_theft = next(t for t in result.tactics if t["name"] == "Code Theft")
    assert code_theft["confidence"] >= 90
    assert code_theft["evidence"] == ["verification code", "otp"]


def test_low_signal(engine):
    result = apply(engine, "Hey, are we still on for lunch tomorrow at noon?")
    assert result.score == 0
    assert result.hits == []
    assert result.tactics == [{
        "name": "Low Signal",
        "confidence": 60,
        "evidence": [],
        "explanation": "No strong scam markers detected.",
    }]
    assert map_to_verdict(result.score) == "harmless"


def test_category_counts_once(engine):
    once = apply(engine, "urgent")
    many = apply(engine, "URGENT urgent act now, final notice, asap, last chance")
    assert once.score == many.score == 10


def test_evidence_capped_at_three(engine):
    result = apply(engine, "act now, urgent, immediately, final notice, asap")
    urgency = next(t for t in result.tactics if t["name"] == "Urgency")
    assert urgency["evidence"] == ["act now", "urgent", "immediately"]


def test_score_clamped_to_100(engine):
    text = (
        "URGENT: send the code and your password, gift card payment, "
        "share before it's deleted, double your money, you won a prize, "
        "the irs says legal action, open the file invoice.zip https://bit.ly/x"
    )
    assert apply(engine, text).score == 100


def test_highlight_phrases_come_from_tactic_rules(engine):
    phrases = engine.highlight_phrases()
    assert ("Code Theft", "otp", next(r for r in engine.rules if r["id"] == "otp")["tactic"]["explanation"]) in phrases
    assert all(label != "urls_present" for label, _, _ in phrases)


def test_reload_keeps_rules(engine):
    before = len(engine.rules)
    engine.load_rules()
    assert len(engine.rules) == before
