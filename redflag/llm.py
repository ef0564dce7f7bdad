"""
External classification service.

The core may consult a language model for a second opinion. Its output is
untrusted: it is parsed, validated against ModelJudgment and dropped on any
mismatch, in which case the caller serves the heuristic result instead.
"""
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import openai
from openai import OpenAI
from pydantic import ValidationError

from .models import ModelJudgment

logger = logging.getLogger(__name__)

SENDER_CONTEXT_BUDGET = 1200

SYSTEM_PROMPT = "You are a cautious message security analyst. Be specific and practical."

RESPONSE_SHAPE = """{
  "risk_score": 0-100,
  "verdict": "harmless"|"suspicious"|"dangerous",
  "attack_types": [{"tag": string, "confidence": 0-100, "rationale": string}],
  "sender_analysis": {"sender_email": string, "from_header": string, "reply_to": string, "return_path": string, "domain": string, "flags": [string]},
  "tactics": [{"name": string, "confidence": 0-100, "evidence": [string], "explanation": string}],
  "suspicious_spans": [{"start": int, "end": int, "label": string, "reason": string}],
  "extracted": {"urls": [string], "phone_numbers": [string], "emails": [string]},
  "next_steps": [string],
  "safe_reply": string,
  "summary": string
}"""


def build_prompt(
    text: str,
    kind: str,
    email_mode: Optional[str],
    kb_context: str,
    sender_context: Dict[str, Any],
) -> str:
    return (
        "Return ONLY valid JSON with exactly these keys:\n"
        f"{RESPONSE_SHAPE}\n\n"
        "Rules:\n"
        "- Confidences and risk_score are integers from 0 to 100.\n"
        "- If kind=email and emailMode=work, include workplace actions: VPN on public wifi, "
        "separate devices/accounts, report to IT, verify via a trusted source.\n"
        "- Attack types should use common security terms when applicable: phishing, pretexting, "
        "BEC / CEO fraud, credential harvesting, code theft, malware lure.\n"
        "- suspicious_spans must index into the EXACT original text.\n"
        "- safe_reply must NOT encourage clicking links or sharing codes.\n\n"
        f"Context: kind={kind}, emailMode={email_mode or 'n/a'}, "
        f"senderContext={json.dumps(sender_context)[:SENDER_CONTEXT_BUDGET]}\n\n"
        f"Known scam patterns that may apply:\n{kb_context or 'none'}\n\n"
        f'TEXT:\n"""{text}"""'
    )


def _strip_fences(raw: str) -> str:
    clean = raw.strip()
    if clean.startswith("```"):
        parts = clean.split("```")
        if len(parts) >= 2:
            clean = parts[1]
            if clean.startswith("json"):
                clean = clean[4:]
    return clean.strip()


def parse_judgment(raw: str) -> Optional[ModelJudgment]:
    """
    Parse a model reply into a ModelJudgment.

    JSON wrapped in prose is recovered from the first '{' to the last '}'.
    Returns None when nothing valid can be recovered.
    """
    if not raw or not raw.strip():
        return None

    clean = _strip_fences(raw)
    try:
        data = json.loads(clean)
    except json.JSONDecodeError:
        start, end = clean.find("{"), clean.rfind("}")
        if start < 0 or end <= start:
            logger.warning("Classifier reply contained no JSON object")
            return None
        try:
            data = json.loads(clean[start:end + 1])
        except json.JSONDecodeError as e:
            logger.warning(f"Classifier reply is not valid JSON: {e}")
            return None

    if not isinstance(data, dict):
        logger.warning("Classifier reply is not a JSON object")
        return None
    try:
        return ModelJudgment.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Classifier reply failed schema validation ({e.error_count()} errors)")
        return None


class Classifier(ABC):
    """
    Backends implement judge(). The pipeline never knows which one runs.
    """

    @abstractmethod
    def is_available(self) -> bool:
        ...

    @abstractmethod
    def judge(
        self,
        text: str,
        kind: str,
        email_mode: Optional[str],
        kb_context: str,
        sender_context: Dict[str, Any],
    ) -> Optional[ModelJudgment]:
        """
        Returns None on any failure. Never raises.
        """
        ...


class OpenAIClassifier(Classifier):

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        timeout_sec: float = 8.0,
        temperature: float = 0.2,
        max_retries: int = 1,
    ):
        self.model = model
        self.temperature = temperature
        self._client = OpenAI(api_key=api_key, timeout=timeout_sec, max_retries=max_retries)

    def is_available(self) -> bool:
        return self._client is not None

    def judge(
        self,
        text: str,
        kind: str,
        email_mode: Optional[str],
        kb_context: str,
        sender_context: Dict[str, Any],
    ) -> Optional[ModelJudgment]:
        prompt = build_prompt(text, kind, email_mode, kb_context, sender_context)
        try:
            completion = self._client.chat.completions.create(
                model=self.model,
                temperature=self.temperature,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
            )
        except openai.OpenAIError as e:
            logger.warning(f"Classifier request failed: {type(e).__name__}")
            return None

        try:
            raw = completion.choices[0].message.content or ""
        except (AttributeError, IndexError):
            logger.warning("Classifier returned no choices")
            return None
        return parse_judgment(raw)
