import re

_HONORIFICS = frozenset({"mr", "mrs", "ms", "miss", "dr", "prof", "sir", "madam"})
_NAME_LABEL_RE = re.compile(r"^student\s*name\s*[:\-]\s*", re.IGNORECASE)


def _squash(value: str | None) -> str:
    return re.sub(r"\s+", " ", value or "").strip()


def _clean_token(token: str) -> str:
    return re.sub(r"^[^A-Za-z]+|[^A-Za-z'\-]+$", "", token).strip()


def _first_name_candidate(raw: str | None) -> str | None:
    name = _NAME_LABEL_RE.sub("", _squash(raw))
    for token in name.split(" "):
        cleaned = _clean_token(token)
        if not cleaned or cleaned.rstrip(".").lower() in _HONORIFICS:
            continue
        if re.search(r"[A-Za-z]", cleaned):
            return cleaned
    return None


def extract_first_name(
    student_full_name: str | None = None, cover_student_name: str | None = None
) -> str | None:
    """First name from the linked student record, else from the cover page."""
    return _first_name_candidate(student_full_name) or _first_name_candidate(cover_student_name)


def personalize_feedback_summary(summary: str, first_name: str | None = None) -> str:
    """Address the summary to the student unless it already starts with their name."""
    clean = _squash(summary)
    name = _squash(first_name)
    if not name:
        return clean
    if not clean:
        return name
    if re.match(rf"^{re.escape(name)}[,\s]", clean, re.IGNORECASE):
        return clean
    return f"{name}, {clean}"
