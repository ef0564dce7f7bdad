import re
from typing import Dict, List, Sequence, Tuple

MAX_SPANS = 30


def locate_spans(
    text: str,
    phrases: Sequence[Tuple[str, str, str]],
    limit: int = MAX_SPANS,
) -> List[Dict[str, object]]:
    """
    Find every case-insensitive occurrence of each dictionary phrase.

    Offsets always index ``text`` itself, never a lowercased copy. Overlapping
    candidates are resolved in favour of the earliest, then longest, match so
    the returned spans never overlap.
    """
    candidates: List[Dict[str, object]] = []
    for label, phrase, reason in phrases:
        if not phrase:
            continue
        for m in re.finditer(re.escape(phrase), text, re.IGNORECASE):
            if m.end() <= m.start():
                continue
            candidates.append({"start": m.start(), "end": m.end(), "label": label, "reason": reason})

    candidates.sort(key=lambda s: (s["start"], -(s["end"] - s["start"])))

    spans: List[Dict[str, object]] = []
    last_end = -1
    for span in candidates:
        if span["start"] < last_end:
            continue
        spans.append(span)
        last_end = span["end"]
        if len(spans) >= limit:
            break
    return spans
