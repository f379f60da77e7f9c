from __future__ import annotations

import html
import re
from datetime import datetime

from bs4 import BeautifulSoup


def strip_html(txt: str) -> str:
    """Plain text from an HN comment/option body."""
    if not txt:
        return ""
    # HN separates paragraphs with bare <p> tags
    clean = BeautifulSoup(txt, "html.parser").get_text(" ", strip=True)
    clean = html.unescape(clean)
    clean = re.sub(r"\s+([.,;:!?])", r"\1", clean)
    clean = re.sub(r"\s+", " ", clean).strip()
    return clean


def format_timestamp(ts: int) -> str:
    if not ts:
        return "unknown time"
    return datetime.fromtimestamp(ts).strftime("%Y-%m-%d %H:%M")
