"""Cell, header and phone normalization for uploaded roster files."""

import re

_HEADER_SEP_RE = re.compile(r"[\s_\-]+")
_PHONE_STRIP_RE = re.compile(r"[\s.\-()]")


def normalize_header(header: str) -> str:
    """Case-fold a header and treat runs of spaces, underscores and hyphens alike.

    "Guardian_Phone", "guardian phone" and " GUARDIAN-PHONE " all normalize
    to "guardian phone".
    """
    return _HEADER_SEP_RE.sub(" ", str(header).strip()).casefold().strip()


def normalize_cell(value) -> str:
    """Turn a decoded cell into a trimmed string. None becomes ''."""
    if value is None:
        return ""
    return re.sub(r"\s+", " ", str(value)).strip()


def normalize_name(name: str) -> str:
    """Clean up a student name: strip stray quotes, collapse whitespace."""
    name = name.strip().strip('"').strip("'").strip()
    return re.sub(r"\s+", " ", name)


def normalize_phone(phone: str) -> str:
    """Drop spaces, dots, hyphens and parentheses; keep a leading '+'."""
    if not phone:
        return ""
    return _PHONE_STRIP_RE.sub("", phone.strip())
