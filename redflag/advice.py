"""
Next steps, safe replies and summaries.

Advice depends on what was pasted (text, email, social), on whether an email
is personal or work mail, and on how risky the final score is. Safe replies
never tell the user to click anything or hand over a code.
"""
import re
from typing import List, Optional, Sequence

MAX_NEXT_STEPS = 10
RISKY = 35
VERY_RISKY = 70

TAB_SWITCH_STEP = "Switch to the Social tab: this content reads like a social/viral post, not an email."
VIRALITY_WARNING = "Viral 'share before it's deleted' or 'link in bio' posts are classic engagement bait. Don't reshare or open the linked pages."
MISMATCH_SUMMARY = "Format mismatch: this was submitted as an email but looks like a social/viral post."

WORK_BASE = [
    "Do not click links or open attachments from this email.",
    "Verify via an official channel (company directory, known number or official portal), not by replying to the email.",
    "Never share passwords or MFA/OTP codes, and don't approve unexpected sign-in prompts.",
]
WORK_EXTRA = [
    "If you're on public or home Wi-Fi, use your organization's trusted VPN before accessing internal resources.",
    "Don't mix work and personal accounts or devices for sensitive actions (payroll, banking, HR changes).",
    "Report it to your security/IT team with the phishing report button or a ticket, and include full headers if possible.",
    "If you already clicked, change passwords via the official portal and notify IT immediately.",
]
PERSONAL_BASE = [
    "Don't click links or download files from the message.",
    "Open the official app or site directly to verify (don't use the message link).",
    "Never share OTP codes, passwords, or banking information.",
]
SOCIAL_STEPS = [
    "Don't reshare immediately; verify via reliable sources.",
    "Watch for engagement bait language (urgency, secrecy, miracle claims).",
    "Report impersonation or scam content to the platform.",
]
TEXT_STEPS = [
    "Don't click links or share codes.",
    "Verify via the official app or site.",
    "Block and report the sender if it looks suspicious.",
]

REPLY_WORK = "I can't act on this request. I'll verify through official company channels before doing anything."
REPLY_PERSONAL = "I can't act on this request. I'll verify through the official website or app."
REPLY_SOCIAL = "I'm not going to share this until I can verify it from a reliable source."
REPLY_TEXT = "I can't do that. I'll verify through official channels first."

_CODE = r"(?:verification |security |one-time |otp |2fa |login )?(?:code|password|pin|otp)"
UNSAFE_REPLY_RE = re.compile(
    r"https?://|www\.|\bclick\b|\btap (?:on )?the link\b|\b(?:open|follow|visit|use) (?:the|this) link\b"
    rf"|\b(?:my|the) {_CODE} is\b|\bhere(?:'s| is) (?:my|the) {_CODE}\b"
    rf"|\bi(?:'ll| will) (?:send|share|forward|give) (?:you )?(?:my|the) {_CODE}\b",
    re.IGNORECASE,
)


def _unique(steps: Sequence[str], limit: int = MAX_NEXT_STEPS) -> List[str]:
    out: List[str] = []
    for s in steps:
        if s and s not in out:
            out.append(s)
    return out[:limit]


def work_email_advice(score: int) -> List[str]:
    if score >= VERY_RISKY:
        return WORK_BASE + WORK_EXTRA
    if score >= RISKY:
        return WORK_BASE + WORK_EXTRA[:3]
    return [WORK_BASE[1], WORK_EXTRA[2]]


def personal_email_advice(score: int) -> List[str]:
    if score < RISKY:
        return [PERSONAL_BASE[1], "If unsure, ignore it and verify independently."]
    return PERSONAL_BASE + ["Block and report the sender as spam/phishing."]


def next_steps(
    kind: str,
    email_mode: Optional[str],
    score: int,
    mismatch: bool = False,
    extra: Sequence[str] = (),
) -> List[str]:
    if kind == "email":
        steps = work_email_advice(score) if email_mode == "work" else personal_email_advice(score)
    elif kind == "social":
        steps = list(SOCIAL_STEPS)
    else:
        steps = list(TEXT_STEPS)

    steps = list(steps) + list(extra)
    if mismatch:
        return with_mismatch_steps(steps)
    return _unique(steps)


def with_mismatch_steps(steps: Sequence[str]) -> List[str]:
    return _unique([TAB_SWITCH_STEP, VIRALITY_WARNING] + list(steps))


def is_safe_reply(reply: str) -> bool:
    return bool(reply and reply.strip()) and UNSAFE_REPLY_RE.search(reply) is None


def canned_reply(kind: str, email_mode: Optional[str]) -> str:
    if kind == "email":
        return REPLY_WORK if email_mode == "work" else REPLY_PERSONAL
    if kind == "social":
        return REPLY_SOCIAL
    return REPLY_TEXT


def safe_reply(kind: str, email_mode: Optional[str], template: str = "") -> str:
    """Knowledge-base template first, canned reply otherwise."""
    if template and is_safe_reply(template):
        return template
    return canned_reply(kind, email_mode)


def summarize(
    kind: str,
    verdict: str,
    tactic_names: Sequence[str],
    mismatch: bool = False,
    pattern: str = "",
) -> str:
    """``pattern`` is the title of the best knowledge-base match, if any."""
    subject = "This email" if kind == "email" else "This post" if kind == "social" else "This message"
    named = [n for n in tactic_names if n != "Low Signal"][:3]
    if verdict == "harmless" and not named:
        summary = f"{subject} shows no strong scam markers. Stay cautious with unexpected requests."
    elif verdict == "harmless":
        summary = f"{subject} shows weak signals ({', '.join(named)}). Verify independently if anything feels off."
    elif named:
        summary = (
            f"{subject} shows patterns commonly used in scams or social engineering ({', '.join(named)}). "
            "Verify independently before acting."
        )
    elif pattern:
        summary = f"{subject} resembles a known scam pattern ({pattern}). Verify independently before acting."
    else:
        summary = (
            f"{subject} was rated {verdict}, but no specific scam tactic was identified. "
            "Verify independently before acting."
        )
    if mismatch:
        summary = ensure_mismatch_summary(summary)
    return summary


def ensure_mismatch_summary(summary: str) -> str:
    if "mismatch" in (summary or "").lower():
        return summary
    return f"{MISMATCH_SUMMARY} {summary}".strip()
