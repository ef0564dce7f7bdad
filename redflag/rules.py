import math, yaml
from typing import Dict, Any, List, Tuple, Callable, Optional
from dataclasses import dataclass, field
from .feature_extractors import contains_any, regex_match

# Verdict boundaries, inclusive on both ends
VERDICTS: List[Tuple[str, int, int]] = [
    ("harmless", 0, 34),
    ("suspicious", 35, 69),
    ("dangerous", 70, 100),
]

MAX_EVIDENCE = 3

LOW_SIGNAL_TACTIC = {
    "name": "Low Signal",
    "confidence": 60,
    "evidence": [],
    "explanation": "No strong scam markers detected.",
}


def map_to_verdict(score: float, verdicts: List[Tuple[str, int, int]] = VERDICTS) -> str:
    for name, lo, hi in verdicts:
        if lo <= score < hi + 1:
            return name
    return "dangerous" if score > 100 else "harmless"


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp_score(score: float) -> int:
    return max(0, min(100, round_half_up(score)))


def clamped_sum(weights: List[float]) -> int:
    """Add rule weights and clamp the total to [0, 100]."""
    return clamp_score(sum(weights))


def blend_scores(model: float, heuristic: float, weight: float = 0.55) -> int:
    return round_half_up(weight * model + (1 - weight) * heuristic)


@dataclass
class RuleHit:
    rule_id: str
    weight: float
    evidence: Dict[str, Any]


@dataclass
class EngineResult:
    hits: List[RuleHit] = field(default_factory=list)
    tactics: List[Dict[str, Any]] = field(default_factory=list)
    score: int = 0

    @property
    def hit_ids(self) -> List[str]:
        return [h.rule_id for h in self.hits]


class RuleEngine:
    def __init__(self, rules_path: str):
        self.rules_path = rules_path
        self.rules: List[Dict[str, Any]] = []
        self.condition_handlers: Dict[str, Callable[[Any, Any], Tuple[bool, Dict[str, Any]]]] = {
            "text.contains_any": self._cond_contains_any,
            "text.regex": self._cond_regex,
            "entities.urls_present": self._cond_urls_present,
            "entities.url_regex": self._cond_url_regex,
        }
        self.load_rules()

    def load_rules(self):
        try:
            with open(self.rules_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            rules = data.get("rules", [])
        except Exception as e:
            raise RuntimeError(f"Failed to load rules from {self.rules_path}: {e}")
        if not isinstance(rules, list):
            raise RuntimeError(f"Failed to load rules from {self.rules_path}: 'rules' must be a list")
        # Swap the whole table at once so a concurrent apply() sees old or new, never half
        self.rules = [r for r in rules if isinstance(r, dict) and "id" in r]

    # ---- Condition primitives ----
    def _cond_contains_any(self, text: str, values: List[str]):
        hits = contains_any(text, values)
        return (bool(hits), {"matched_terms": hits} if hits else {})

    def _cond_regex(self, text: str, pattern: str):
        ok = regex_match(text, pattern)
        return (ok, {"regex": pattern} if ok else {})

    def _cond_urls_present(self, entities: Dict[str, List[str]], expected: bool):
        urls = entities.get("urls") or []
        ok = bool(urls) == bool(expected)
        return (ok, {"urls": urls[:MAX_EVIDENCE]} if ok and urls else {})

    def _cond_url_regex(self, entities: Dict[str, List[str]], pattern: str):
        matched = [u for u in entities.get("urls") or [] if regex_match(u, pattern)]
        return (bool(matched), {"matched_terms": matched} if matched else {})

    # ---- Evaluation ----
    def eval_conditions(self, text: str, entities: Dict[str, List[str]], conds: Dict[str, Any]) -> Tuple[bool, Dict[str, Any]]:
        if "any" in conds:
            for c in conds["any"]:
                ok, ev = self.eval_condition(text, entities, c)
                if ok:
                    return True, ev
            return False, {}
        if "all" in conds:
            combined = {}
            for c in conds["all"]:
                ok, ev = self.eval_condition(text, entities, c)
                if not ok:
                    return False, {}
                combined.update(ev)
            return True, combined
        return self.eval_condition(text, entities, conds)

    def eval_condition(self, text: str, entities: Dict[str, List[str]], cond: Dict[str, Any]) -> Tuple[bool, Dict[str, Any]]:
        for key, val in cond.items():
            if key in self.condition_handlers:
                handler = self.condition_handlers[key]
                # text.* handlers read the raw message, entities.* the extracted lists
                if key.startswith("text."):
                    return handler(text, val)
                return handler(entities, val)
        return False, {}

    def apply(self, text: str, entities: Dict[str, List[str]]) -> EngineResult:
        result = EngineResult()
        for r in self.rules:
            ok, ev = self.eval_conditions(text, entities, r.get("conditions", {}))
            if not ok:
                continue
            result.hits.append(RuleHit(rule_id=r["id"], weight=float(r.get("weight", 0)), evidence=ev))
            tactic = r.get("tactic")
            if tactic:
                result.tactics.append({
                    "name": tactic["name"],
                    "confidence": int(tactic.get("confidence", 60)),
                    "evidence": list(ev.get("matched_terms", []))[:MAX_EVIDENCE],
                    "explanation": tactic.get("explanation", ""),
                })

        result.score = clamped_sum([h.weight for h in result.hits])
        if not result.tactics:
            result.tactics.append(dict(LOW_SIGNAL_TACTIC, evidence=[]))
        return result

    def highlight_phrases(self) -> List[Tuple[str, str, str]]:
        """(label, phrase, reason) triples for every phrase rule that names a tactic."""
        out: List[Tuple[str, str, str]] = []
        for r in self.rules:
            tactic: Optional[Dict[str, Any]] = r.get("tactic")
            phrases = (r.get("conditions") or {}).get("text.contains_any")
            if not tactic or not phrases:
                continue
            for phrase in phrases:
                out.append((tactic["name"], phrase, tactic.get("explanation", "")))
        return out
