import os

from redflag.rules import RuleEngine
from redflag.spans import locate_spans

RULES_PATH = os.path.join(os.path.dirname(__file__), "..", "rules", "rules.yaml")

PHRASES = [
    ("Urgency", "urgent", "pressure"),
    ("Code Theft", "otp", "codes"),
    ("Financial Hook", "invoice", "money"),
    ("Attachment Lure", "invoice attached", "malware"),
]


def assert_valid(text, spans, phrases=PHRASES):
    known = {p.lower() for _, p, _ in phrases}
    for s in spans:
        assert 0 <= s["start"] < s["end"] <= len(text)
        assert text[s["start"]:s["end"]].lower() in known


def test_finds_every_occurrence_in_original_text():
    text = "URGENT: send OTP. Urgent! otp otp"
    spans = locate_spans(text, PHRASES)
    assert [(s["start"], s["end"], s["label"]) for s in spans] == [
        (0, 6, "Urgency"),
        (13, 16, "Code Theft"),
        (18, 24, "Urgency"),
        (26, 29, "Code Theft"),
        (30, 33, "Code Theft"),
    ]
    assert_valid(text, spans)


def test_overlaps_resolve_to_longest_earliest():
    text = "Invoice attached, second invoice below"
    spans = locate_spans(text, PHRASES)
    assert [(s["start"], s["end"], s["label"]) for s in spans] == [
        (0, 16, "Attachment Lure"),
        (25, 32, "Financial Hook"),
    ]
    assert_valid(text, spans)


def test_spans_never_overlap():
    text = "invoice attached invoice attached otp"
    spans = locate_spans(text, PHRASES)
    for a, b in zip(spans, spans[1:]):
        assert a["end"] <= b["start"]


def test_cap():
    text = "otp " * 100
    assert len(locate_spans(text, PHRASES)) == 30
    assert len(locate_spans(text, PHRASES, limit=5)) == 5


def test_no_matches():
    assert locate_spans("nothing to see", PHRASES) == []


def test_offsets_survive_case_changing_characters():
    text = "İstanbul office: urgent payment"
    spans = locate_spans(text, PHRASES)
    assert text[spans[0]["start"]:spans[0]["end"]] == "urgent"


def test_rule_table_dictionary():
    engine = RuleEngine(RULES_PATH)
    phrases = engine.highlight_phrases()
    text = "Your account will be locked. Verify immediately: https://bit.ly/lock-verify"
    spans = locate_spans(text, phrases)
    assert {s["label"] for s in spans} == {"Fear", "Urgency"}
    assert_valid(text, spans, phrases)
