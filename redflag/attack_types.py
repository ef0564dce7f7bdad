from typing import Dict, Iterable, List, Sequence

MAX_ATTACK_TYPES = 6


def _tag(tag: str, confidence: int, rationale: str) -> Dict[str, object]:
    return {"tag": tag, "confidence": int(confidence), "rationale": rationale}


def dedupe_by_max(tags: Iterable[Dict[str, object]], limit: int = MAX_ATTACK_TYPES) -> List[Dict[str, object]]:
    """Keep the highest-confidence instance per tag, sorted by confidence descending."""
    best: Dict[str, Dict[str, object]] = {}
    for t in tags:
        prev = best.get(t["tag"])
        if prev is None or t["confidence"] > prev["confidence"]:
            best[t["tag"]] = t
    return sorted(best.values(), key=lambda t: t["confidence"], reverse=True)[:limit]


def classify_attack_types(
    kind: str,
    hit_ids: Sequence[str],
    has_urls: bool,
    sender_flags: Sequence[str] = (),
) -> List[Dict[str, object]]:
    hits = set(hit_ids)
    has_cred = "credential" in hits
    has_otp = "otp" in hits
    has_money = "money" in hits
    has_impersonation = "authority" in hits
    has_attachment = "attachment" in hits
    has_virality = "virality" in hits
    has_get_rich = "get_rich" in hits

    tags: List[Dict[str, object]] = []

    if kind in ("email", "text") and (has_cred or has_otp or has_urls):
        tags.append(_tag(
            "phishing",
            min(95, 55 + 30 * has_otp + 20 * has_cred + 10 * has_urls),
            "Tries to get you to click, log in or share secrets.",
        ))
    if has_impersonation:
        tags.append(_tag(
            "pretexting",
            90 if sender_flags else 80,
            "Pretends to be a trusted role or organization to make you comply.",
        ))
    if has_money and has_impersonation:
        tags.append(_tag("BEC / CEO fraud", 85, "Authority plus payment request pattern."))
    if has_attachment:
        tags.append(_tag("malware lure", 75, "Attachment-driven delivery is a common malware vector."))
    if has_otp:
        tags.append(_tag("code theft", 90, "Requests for OTP/MFA codes are a major takeover indicator."))
    if has_cred:
        tags.append(_tag("credential harvesting", 84, "Tries to capture logins via fake verification or reset."))

    if kind == "social":
        if has_virality:
            tags.append(_tag(
                "misinformation / engagement bait",
                78,
                "Uses virality pressure and vague claims to drive shares.",
            ))
        if has_get_rich:
            tags.append(_tag(
                "investment fraud / get-rich-quick",
                85,
                "Promises fast or guaranteed money to lure deposits.",
            ))
    elif has_virality or has_get_rich:
        tags.append(_tag("spam / engagement bait", 85, "Bait language meant to drive clicks, shares or replies."))

    return dedupe_by_max(tags)
