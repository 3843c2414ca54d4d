# auction_sheets/titles.py
"""Pattern-based facts pulled out of free-text listing titles.

Every parser is total: unparsable input yields the documented default
instead of raising.
"""
import re
from typing import Iterable

NOT_NUMBERED = 999999

YEAR_RE = re.compile(r"\b(\d{4})(?:-\d{2})?\b")
SERIAL_RE = re.compile(r"#\d+/(\d{1,5})")
BARE_SERIAL_RE = re.compile(r"/(\d{1,5})(?:\s|$)")
PSA_RE = re.compile(r"PSA (\d{1,2})")
AUTO_RE = re.compile(r"\bauto(?:graph(?:ed)?)?\b", re.I)


def parse_year(title):
    if not title:
        return ""
    m = YEAR_RE.search(title)
    return m.group(1) if m else ""


def parse_out_of(title) -> int:
    """Serial-numbering denominator, e.g. '#12/99' -> 99.

    Titles with no denominator (including a bare '#12') get NOT_NUMBERED so
    they sort after every numbered card.
    """
    if not title:
        return NOT_NUMBERED
    m = SERIAL_RE.search(title) or BARE_SERIAL_RE.search(title)
    if m:
        return int(m.group(1))
    return NOT_NUMBERED


def parse_psa(title):
    if not title:
        return "0"
    m = PSA_RE.search(title)
    return m.group(1) if m else "0"


def parse_rookie(title):
    if not title or not title.strip():
        return "No"
    lower = title.lower()
    return "Yes" if (" rc " in lower or " rookie " in lower) else "No"


def parse_patch(title):
    return "Yes" if title and "patch" in title.lower() else "No"


def parse_auto(title):
    return "Yes" if title and AUTO_RE.search(title) else "No"


def parse_case_hit(title, case_hit_names: Iterable[str] = ()):
    if not title:
        return "No"
    lower = title.lower()
    for name in case_hit_names:
        name = (name or "").strip().lower()
        if name and name in lower:
            return "Yes"
    return "No"


def parse_title(title):
    # doubled quotes survive delimited exports
    return title.replace('"', '""') if title is not None else ""


def format_url(url):
    if not url:
        return ""
    if "," in url or '"' in url:
        return '"' + url.replace('"', '""') + '"'
    return url
