import re
import textdistance
from typing import Dict, List, Sequence
from urllib.parse import urlsplit

MAX_ENTITIES = 40

URL_RE = re.compile(
    r"(https?://[^\s)<>\"']+)"
    r"|((?<![@\w.-])[a-z0-9][a-z0-9.-]*\.[a-z]{2,}(?![\w@-]|\.[\w-])(?:/[^\s)<>\"']*)?)",
    re.IGNORECASE,
)
EMAIL_RE = re.compile(r"\b[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}\b", re.IGNORECASE)
PHONE_RE = re.compile(r"(?<![\d\w])(?:\+?\d{1,2}[\s.-]?)?(?:\(\d{3}\)|\d{3})[\s.-]?\d{3}[\s.-]?\d{4}(?!\d)")

# Bare "name.ext" tokens that are file names rather than domains
FILE_EXTENSIONS = {
    "exe", "zip", "iso", "html", "htm", "docm", "doc", "docx", "xls", "xlsx",
    "xlsm", "pdf", "txt", "png", "jpg", "jpeg", "gif", "js", "rar", "7z", "csv",
}
TRAILING_PUNCT = ".,;:!?'\"]}"

HEADER_LINE_RE = re.compile(r"^(subject|from|to|date|cc):", re.IGNORECASE | re.MULTILINE)
# Every phrase here is also a virality or get-rich rule phrase
SOCIAL_BAIT_RE = re.compile(
    r"link in bio|share before it[’']s deleted|they don[’']t want you to know"
    r"|repost|going viral|double your money|miracle trick",
    re.IGNORECASE,
)


def contains_any(text: str, terms: Sequence[str]) -> List[str]:
    """Matched terms in the order they are listed."""
    t = (text or "").lower()
    return [term for term in terms if term.lower() in t]


def lookalike_score(a: str, b: str) -> float:
    # Use Jaro-Winkler similarity as a reasonable proxy
    if not a or not b:
        return 0.0
    return float(textdistance.jaro_winkler(a.lower(), b.lower()))


def regex_match(text: str, pattern: str) -> bool:
    if not text:
        return False
    return re.search(pattern, text, re.IGNORECASE) is not None


def dedupe(items: Sequence[str], casefold: bool = False, limit: int = MAX_ENTITIES) -> List[str]:
    seen = set()
    out: List[str] = []
    for item in items:
        key = item.lower() if casefold else item
        if key in seen:
            continue
        seen.add(key)
        out.append(item)
        if len(out) >= limit:
            break
    return out


def _clean_url(raw: str) -> str:
    return raw.rstrip(TRAILING_PUNCT)


def _is_file_name(token: str) -> bool:
    if "/" in token:
        return False
    return token.rsplit(".", 1)[-1].lower() in FILE_EXTENSIONS


def extract_urls(text: str) -> List[str]:
    found = []
    for m in URL_RE.finditer(text or ""):
        url = _clean_url(m.group(0))
        if not url or "." not in url:
            continue
        if m.group(2) and _is_file_name(url):
            continue
        found.append(url)
    return dedupe(found, casefold=True)


def extract_emails(text: str) -> List[str]:
    return dedupe([m.group(0) for m in EMAIL_RE.finditer(text or "")])


def extract_phone_numbers(text: str) -> List[str]:
    return dedupe([m.group(0).strip() for m in PHONE_RE.finditer(text or "")])


def extract_entities(text: str) -> Dict[str, List[str]]:
    return {
        "urls": extract_urls(text),
        "emails": extract_emails(text),
        "phone_numbers": extract_phone_numbers(text),
    }


def url_host(url: str) -> str:
    normalized = url if url.lower().startswith("http") else f"https://{url}"
    try:
        return (urlsplit(normalized).hostname or "").lower()
    except ValueError:
        return ""


def url_domains(urls: Sequence[str], limit: int = 20) -> List[str]:
    return dedupe([h for h in (url_host(u) for u in urls) if h], limit=limit)


def domain_of(email: str) -> str:
    at = email.rfind("@")
    if at == -1:
        return ""
    return email[at + 1:].lower()


def looks_like_email(text: str) -> bool:
    return HEADER_LINE_RE.search(text or "") is not None or "@" in (text or "")


def looks_like_social(text: str) -> bool:
    return SOCIAL_BAIT_RE.search(text or "") is not None


def kind_mismatch(kind: str, text: str) -> bool:
    """Email was selected but the content reads like a viral social post."""
    return kind == "email" and not looks_like_email(text) and looks_like_social(text)
