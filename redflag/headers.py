"""
Sender analysis for pasted emails.

Reads the From / Reply-To / Return-Path lines near the top of the paste and
raises flags for redirect-replies tricks, spoofing hints, free-mail senders
claiming an organizational role, lookalike domains and links that point
somewhere other than the sender's domain. A paste without headers is a valid
"no sender info" result, not an error.
"""
import re
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional, Sequence

import tldextract

from .feature_extractors import EMAIL_RE, domain_of, lookalike_score, url_domains

HEADER_SCAN_LINES = 70
LOOKALIKE_THRESHOLD = 0.9

FREE_PROVIDERS = {
    "gmail.com", "yahoo.com", "outlook.com", "hotmail.com", "icloud.com",
    "aol.com", "proton.me", "protonmail.com", "gmx.com", "mail.com",
}

BRAND_DOMAINS = [
    "paypal.com", "microsoft.com", "apple.com", "amazon.com", "google.com",
    "netflix.com", "facebook.com", "instagram.com", "linkedin.com",
    "chase.com", "wellsfargo.com", "bankofamerica.com", "docusign.com",
    "dropbox.com", "office.com", "usps.com", "fedex.com", "dhl.com",
]

BRAND_LABELS = {b.split(".")[0] for b in BRAND_DOMAINS}

# Bundled public suffix snapshot, no network fetch
_tld_extract = tldextract.TLDExtract(suffix_list_urls=())

ROLE_CLAIM_RE = re.compile(
    r"\b(hr|payroll|it department|it support|helpdesk|help desk|security team|admin|administrator"
    r"|ceo|cfo|finance|accounts payable|microsoft|google|apple|paypal|amazon|bank|university|support)\b",
    re.IGNORECASE,
)
SUSPICIOUS_DOMAIN_WORDS = ("secure", "verify", "login", "account", "support")

FLAG_REPLY_TO = "Reply-To mismatch (can redirect replies to attacker)."
FLAG_RETURN_PATH = "Return-Path mismatch (can indicate spoofing/forwarding)."
FLAG_FREE_ROLE = "Free email domain used while claiming an organization role."
FLAG_LOOKALIKE = "Sender domain has lookalike characteristics."
FLAG_UNRELATED_LINKS = "Links point to domains unrelated to the sender domain."


@dataclass
class ParsedHeaders:
    from_header: str = ""
    reply_to: str = ""
    return_path: str = ""
    from_email: str = ""
    reply_email: str = ""
    return_email: str = ""


@dataclass
class SenderAnalysis:
    sender_email: str = ""
    from_header: str = ""
    reply_to: str = ""
    return_path: str = ""
    domain: str = ""
    flags: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


def _header_value(lines: Sequence[str], name: str) -> str:
    pattern = re.compile(rf"^{re.escape(name)}:\s*(.+)$", re.IGNORECASE)
    for line in lines:
        m = pattern.match(line)
        if m:
            return m.group(1).strip()
    return ""


def _first_email(value: str) -> str:
    m = EMAIL_RE.search(value or "")
    return m.group(0).lower() if m else ""


def parse_email_headers(raw: str) -> ParsedHeaders:
    lines = (raw or "").splitlines()[:HEADER_SCAN_LINES]
    from_header = _header_value(lines, "From")
    reply_to = _header_value(lines, "Reply-To")
    return_path = _header_value(lines, "Return-Path")
    return ParsedHeaders(
        from_header=from_header,
        reply_to=reply_to,
        return_path=return_path,
        from_email=_first_email(from_header),
        reply_email=_first_email(reply_to),
        return_email=_first_email(return_path),
    )


def claims_organizational_role(text: str) -> bool:
    return ROLE_CLAIM_RE.search(text or "") is not None


def _is_brand_or_subdomain(domain: str, brand: str) -> bool:
    return domain == brand or domain.endswith("." + brand)


def registrable_label(domain: str) -> str:
    """'apple' for apple.co.uk, mail.apple.com or apple.com."""
    return _tld_extract(domain).domain.lower()


def is_lookalike_domain(domain: str) -> bool:
    if not domain:
        return False
    if "xn--" in domain or domain.count("-") >= 3:
        return True
    if any(word in domain for word in SUSPICIOUS_DOMAIN_WORDS):
        return True
    if domain in FREE_PROVIDERS or any(_is_brand_or_subdomain(domain, b) for b in BRAND_DOMAINS):
        return False
    # Regional brand domains (amazon.co.jp, google.ca) share the brand's label
    if registrable_label(domain) in BRAND_LABELS:
        return False
    return any(lookalike_score(domain, b) >= LOOKALIKE_THRESHOLD for b in BRAND_DOMAINS)


def analyze_sender(text: str, urls: Sequence[str], sender_hint: Optional[str] = None) -> SenderAnalysis:
    headers = parse_email_headers(text)
    sender_email = (sender_hint or "").strip().lower() or headers.from_email or headers.reply_email
    domain = domain_of(sender_email)

    flags: List[str] = []
    if headers.reply_email and headers.reply_email != headers.from_email:
        flags.append(FLAG_REPLY_TO)
    if headers.return_email and headers.return_email != headers.from_email:
        flags.append(FLAG_RETURN_PATH)
    if domain in FREE_PROVIDERS and claims_organizational_role(text):
        flags.append(FLAG_FREE_ROLE)
    if is_lookalike_domain(domain):
        flags.append(FLAG_LOOKALIKE)
    if domain:
        unrelated = [d for d in url_domains(urls) if not d.endswith(domain)]
        if unrelated:
            flags.append(FLAG_UNRELATED_LINKS)

    return SenderAnalysis(
        sender_email=sender_email,
        from_header=headers.from_header,
        reply_to=headers.reply_to,
        return_path=headers.return_path,
        domain=domain,
        flags=flags,
    )
