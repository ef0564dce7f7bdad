"""
One analysis pipeline for every message kind.

Heuristics always run first and produce a complete result on their own. When
a classifier is configured its judgment is blended in afterwards; if it is
missing, fails or returns something malformed the heuristic result is served
unchanged. Nothing computed here outlives the call.
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from . import advice
from .attack_types import classify_attack_types, dedupe_by_max
from .feature_extractors import MAX_ENTITIES, dedupe, extract_entities, kind_mismatch, url_domains
from .headers import SenderAnalysis as SenderReport, analyze_sender
from .knowledge_base import KbEntry, KnowledgeBase, min_risk, render_context, risk_boost, safe_reply_template
from .llm import Classifier
from .models import (
    AnalysisResult, AnalyzeRequest, AttackType, Extracted, ModelJudgment,
    SenderAnalysis, SuspiciousSpan, Tactic,
)
from .rules import EngineResult, RuleEngine, blend_scores, clamp_score, map_to_verdict, round_half_up
from .spans import locate_spans

logger = logging.getLogger(__name__)

MODEL_WEIGHT = 0.55
MAX_KB_BOOST = 25
MISMATCH_FLOOR = 70
MAX_SENDER_FLAGS = 12


def final_score(
    heuristic: int,
    model: Optional[float] = None,
    kb_boost: float = 0,
    kb_min: int = 0,
    mismatch: bool = False,
    weight: float = MODEL_WEIGHT,
) -> int:
    """Blend (when a model score exists), add the KB boost, then apply the floors in order."""
    score = heuristic if model is None else blend_scores(model, heuristic, weight)
    if kb_boost:
        score += min(MAX_KB_BOOST, round_half_up(kb_boost / 3))
    score = max(score, kb_min or 0)
    if mismatch:
        score = max(score, MISMATCH_FLOOR)
    return clamp_score(score)


@dataclass
class Signals:
    """Everything the heuristics derived from one request."""
    entities: Dict[str, List[str]]
    engine: EngineResult
    spans: List[Dict[str, object]]
    sender: SenderReport
    attack_types: List[Dict[str, object]]
    kb_entries: List[KbEntry]
    mismatch: bool


def _top_pattern(signals: Signals) -> str:
    return signals.kb_entries[0].title if signals.kb_entries else ""


class Analyzer:

    def __init__(
        self,
        engine: RuleEngine,
        kb: KnowledgeBase,
        classifier: Optional[Classifier] = None,
        model_weight: float = MODEL_WEIGHT,
    ):
        self.engine = engine
        self.kb = kb
        self.classifier = classifier
        self.model_weight = model_weight

    @property
    def llm_enabled(self) -> bool:
        return self.classifier is not None and self.classifier.is_available()

    # ---- Heuristics ----
    def collect_signals(self, req: AnalyzeRequest) -> Signals:
        text = req.text
        entities = extract_entities(text)
        engine_result = self.engine.apply(text, entities)
        spans = locate_spans(text, self.engine.highlight_phrases())
        sender = (
            analyze_sender(text, entities["urls"], req.sender_email)
            if req.kind == "email" else SenderReport()
        )
        attack_types = classify_attack_types(
            req.kind, engine_result.hit_ids, bool(entities["urls"]), sender.flags,
        )
        # KB patterns only adjust a message the rules already flagged
        kb_entries = self.kb.retrieve(text, req.kind, req.email_mode) if engine_result.hits else []
        return Signals(
            entities=entities,
            engine=engine_result,
            spans=spans,
            sender=sender,
            attack_types=attack_types,
            kb_entries=kb_entries,
            mismatch=kind_mismatch(req.kind, text),
        )

    def _score(self, signals: Signals, model: Optional[float] = None) -> int:
        return final_score(
            signals.engine.score,
            model,
            risk_boost(signals.kb_entries),
            min_risk(signals.kb_entries),
            signals.mismatch,
            self.model_weight,
        )

    def _next_steps(self, req: AnalyzeRequest, signals: Signals, score: int) -> List[str]:
        extra = list(signals.kb_entries[0].what_to_do) if signals.kb_entries else []
        return advice.next_steps(req.kind, req.email_mode, score, signals.mismatch, extra)

    def _safe_reply(self, req: AnalyzeRequest, signals: Signals) -> str:
        return advice.safe_reply(req.kind, req.email_mode, safe_reply_template(signals.kb_entries))

    def heuristic_result(self, req: AnalyzeRequest, signals: Signals) -> AnalysisResult:
        score = self._score(signals)
        verdict = map_to_verdict(score)
        tactics = signals.engine.tactics
        return AnalysisResult(
            risk_score=score,
            verdict=verdict,
            tactics=[Tactic(**t) for t in tactics],
            suspicious_spans=[SuspiciousSpan(**s) for s in signals.spans],
            extracted=Extracted(**signals.entities),
            attack_types=[AttackType(**a) for a in signals.attack_types],
            sender_analysis=SenderAnalysis(**signals.sender.to_dict()),
            next_steps=self._next_steps(req, signals, score),
            safe_reply=self._safe_reply(req, signals),
            summary=advice.summarize(
                req.kind, verdict, [t["name"] for t in tactics], signals.mismatch, _top_pattern(signals),
            ),
        )

    # ---- Blending ----
    def blended_result(self, req: AnalyzeRequest, signals: Signals, judgment: ModelJudgment) -> AnalysisResult:
        score = self._score(signals, judgment.risk_score)
        verdict = map_to_verdict(score)
        local = signals.entities

        extracted = Extracted(
            urls=dedupe(judgment.extracted.urls + local["urls"], casefold=True, limit=MAX_ENTITIES),
            phone_numbers=dedupe(judgment.extracted.phone_numbers + local["phone_numbers"], limit=MAX_ENTITIES),
            emails=dedupe(judgment.extracted.emails + local["emails"], limit=MAX_ENTITIES),
        )
        attack_types = dedupe_by_max(
            [a.model_dump() for a in judgment.attack_types] + signals.attack_types
        )

        model_sender = judgment.sender_analysis
        sender = SenderAnalysis(
            sender_email=model_sender.sender_email or signals.sender.sender_email,
            from_header=model_sender.from_header or signals.sender.from_header,
            reply_to=model_sender.reply_to or signals.sender.reply_to,
            return_path=model_sender.return_path or signals.sender.return_path,
            domain=model_sender.domain or signals.sender.domain,
            flags=dedupe(model_sender.flags + signals.sender.flags, limit=MAX_SENDER_FLAGS),
        )

        steps = judgment.next_steps or self._next_steps(req, signals, score)
        if req.kind == "email" and req.email_mode == "work":
            steps = advice.work_email_advice(score) + steps
        steps = advice.with_mismatch_steps(steps) if signals.mismatch else dedupe(steps, limit=advice.MAX_NEXT_STEPS)

        reply = judgment.safe_reply if advice.is_safe_reply(judgment.safe_reply) else self._safe_reply(req, signals)

        tactics = judgment.tactics or [Tactic(**t) for t in signals.engine.tactics]
        summary = judgment.summary or advice.summarize(
            req.kind, verdict, [t.name for t in tactics], pattern=_top_pattern(signals),
        )
        if signals.mismatch:
            summary = advice.ensure_mismatch_summary(summary)

        return AnalysisResult(
            risk_score=score,
            verdict=verdict,
            tactics=tactics,
            suspicious_spans=[SuspiciousSpan(**s) for s in signals.spans],
            extracted=extracted,
            attack_types=[AttackType(**a) for a in attack_types],
            sender_analysis=sender,
            next_steps=steps,
            safe_reply=reply,
            summary=summary,
        )

    def _sender_context(self, req: AnalyzeRequest, signals: Signals) -> Dict[str, object]:
        sender = signals.sender
        return {
            "sender_email": sender.sender_email,
            "domain": sender.domain,
            "flags": sender.flags,
            "link_domains": url_domains(signals.entities["urls"]),
            "emailMode": req.email_mode or "",
            "header_from": sender.from_header,
            "header_reply_to": sender.reply_to,
            "header_return_path": sender.return_path,
        }

    def analyze(self, req: AnalyzeRequest) -> AnalysisResult:
        signals = self.collect_signals(req)

        judgment = None
        mode = "heuristic"
        if self.llm_enabled:
            judgment = self.classifier.judge(
                req.text,
                req.kind,
                req.email_mode,
                render_context(signals.kb_entries),
                self._sender_context(req, signals),
            )
            mode = "blended" if judgment is not None else "fallback"

        if judgment is None:
            result = self.heuristic_result(req, signals)
        else:
            result = self.blended_result(req, signals, judgment)

        logger.info(
            "analysis kind=%s mode=%s heuristic=%s score=%s verdict=%s kb=%s",
            req.kind, mode, signals.engine.score, result.risk_score, result.verdict,
            ",".join(e.id for e in signals.kb_entries) or "-",
        )
        return result
