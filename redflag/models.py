from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, StrictStr, model_validator
from typing import Annotated, Optional, List, Literal

Kind = Literal["text", "email", "social"]
EmailMode = Literal["personal", "work"]
Verdict = Literal["harmless", "suspicious", "dangerous"]
Confidence = Annotated[StrictInt, Field(ge=0, le=100)]


class ShapeModel(BaseModel):
    # Unknown keys are rejected; field types are strict so nothing gets coerced
    model_config = ConfigDict(extra="forbid")


class AnalyzeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    kind: Kind = "text"
    text: str = Field(min_length=3)
    email_mode: Optional[EmailMode] = Field(default=None, alias="emailMode")
    sender_email: Optional[str] = Field(default=None, alias="senderEmail")

    @model_validator(mode="after")
    def _text_not_blank(self):
        if len(self.text.strip()) < 3:
            raise ValueError("text must contain at least 3 non-whitespace characters")
        return self


class Tactic(ShapeModel):
    name: StrictStr
    confidence: Confidence
    evidence: List[StrictStr] = Field(default_factory=list)
    explanation: StrictStr


class SuspiciousSpan(ShapeModel):
    start: Annotated[StrictInt, Field(ge=0)]
    end: Annotated[StrictInt, Field(ge=0)]
    label: StrictStr
    reason: StrictStr

    @model_validator(mode="after")
    def _non_empty(self):
        if self.end <= self.start:
            raise ValueError("span end must be greater than start")
        return self


class Extracted(ShapeModel):
    urls: List[StrictStr]
    phone_numbers: List[StrictStr]
    emails: List[StrictStr]


class AttackType(ShapeModel):
    tag: StrictStr
    confidence: Confidence
    rationale: StrictStr


class SenderAnalysis(ShapeModel):
    sender_email: StrictStr = ""
    from_header: StrictStr = ""
    reply_to: StrictStr = ""
    return_path: StrictStr = ""
    domain: StrictStr = ""
    flags: List[StrictStr] = Field(default_factory=list)


class ModelJudgment(ShapeModel):
    """What the external classifier must return before it is trusted."""
    risk_score: Annotated[StrictFloat, Field(ge=0, le=100)]
    verdict: Verdict
    tactics: List[Tactic]
    suspicious_spans: List[SuspiciousSpan]
    extracted: Extracted
    attack_types: List[AttackType] = Field(default_factory=list)
    sender_analysis: SenderAnalysis = Field(default_factory=SenderAnalysis)
    next_steps: List[StrictStr]
    safe_reply: StrictStr
    summary: StrictStr


class AnalysisResult(ShapeModel):
    risk_score: Annotated[StrictInt, Field(ge=0, le=100)]
    verdict: Verdict
    tactics: List[Tactic]
    suspicious_spans: List[SuspiciousSpan]
    extracted: Extracted
    attack_types: List[AttackType]
    sender_analysis: SenderAnalysis = Field(default_factory=SenderAnalysis)
    next_steps: List[str]
    safe_reply: str
    summary: str
