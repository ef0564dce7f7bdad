import yaml
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .feature_extractors import kind_mismatch

FORMAT_MISMATCH_ID = "format_not_email"
WORK_BIAS_ID = "ceo_gift_cards"
TAG_SCORE = 3
MISMATCH_BONUS = 12
WORK_BIAS = 1
MIN_TAG_LENGTH = 3
CONTEXT_BUDGET = 3500


@dataclass(frozen=True)
class KbEntry:
    id: str
    title: str
    tags: Tuple[str, ...]
    risk_boost: float = 0.0
    min_risk: Optional[int] = None
    why_risky: str = ""
    what_to_do: Tuple[str, ...] = ()
    safe_reply_template: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KbEntry":
        min_risk = data.get("min_risk")
        return cls(
            id=str(data["id"]),
            title=str(data.get("title", "")),
            tags=tuple(str(t) for t in data.get("tags") or []),
            risk_boost=float(data.get("risk_boost") or 0),
            min_risk=int(min_risk) if min_risk is not None else None,
            why_risky=str(data.get("why_risky", "")),
            what_to_do=tuple(str(s) for s in data.get("what_to_do") or []),
            safe_reply_template=str(data.get("safe_reply_template") or ""),
        )


class KnowledgeBase:
    """Read-only table of known scam patterns, loaded once and shared by reference."""

    def __init__(self, entries: Sequence[KbEntry] = ()):
        self._entries: Tuple[KbEntry, ...] = tuple(entries)

    @classmethod
    def from_yaml(cls, path: str) -> "KnowledgeBase":
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            entries = [KbEntry.from_dict(e) for e in data.get("entries", []) if isinstance(e, dict)]
        except Exception as e:
            raise RuntimeError(f"Failed to load knowledge base from {path}: {e}")
        return cls(entries)

    @property
    def entries(self) -> Tuple[KbEntry, ...]:
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def retrieve(self, text: str, kind: str, email_mode: Optional[str] = None, k: int = 4) -> List[KbEntry]:
        t = (text or "").lower()
        mismatch = kind_mismatch(kind, text)

        scored = []
        for entry in self._entries:
            score = 0
            for tag in entry.tags:
                tag_n = tag.lower()
                if len(tag_n) >= MIN_TAG_LENGTH and tag_n in t:
                    score += TAG_SCORE
            if entry.id == FORMAT_MISMATCH_ID and mismatch:
                score += MISMATCH_BONUS
            if email_mode == "work" and entry.id == WORK_BIAS_ID:
                score += WORK_BIAS
            if score > 0:
                scored.append((score, entry))

        # sorted() is stable, so equal scores keep file order
        scored = sorted(scored, key=lambda pair: pair[0], reverse=True)
        return [entry for _, entry in scored[:k]]


def risk_boost(entries: Sequence[KbEntry]) -> float:
    return sum(e.risk_boost or 0 for e in entries)


def min_risk(entries: Sequence[KbEntry]) -> int:
    return max([e.min_risk or 0 for e in entries], default=0)


def safe_reply_template(entries: Sequence[KbEntry]) -> str:
    for e in entries:
        if e.safe_reply_template.strip():
            return e.safe_reply_template.strip()
    return ""


def render_context(entries: Sequence[KbEntry], budget: int = CONTEXT_BUDGET) -> str:
    blocks = []
    for e in entries:
        lines = [f"[{e.id}] {e.title}", f"Why risky: {e.why_risky}"]
        lines += [f"- {step}" for step in e.what_to_do]
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)[:budget]
