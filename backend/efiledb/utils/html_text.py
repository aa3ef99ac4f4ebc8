"""
Conversions between the rich-text `matter` stored on document pages and
the plain text used by single-line inputs and templates.
"""

from __future__ import annotations

import html
import re
from typing import Optional

from bs4 import BeautifulSoup

_BLANK_LINES = re.compile(r"\n\s*\n+")
_WHITESPACE = re.compile(r"[ \t\f\v\xa0]+")


def text_to_html(text: Optional[str]) -> str:
    """
    Convert stored plain text into HTML paragraphs.

    Paragraphs are separated by blank lines; single newlines become <br>.
    Text that already looks like markup is returned unchanged.
    """
    if not text:
        return ""
    if re.search(r"<\s*(p|br|div|ul|ol|table|h[1-6])\b", text, re.IGNORECASE):
        return text

    normalised = text.replace("\r\n", "\n").replace("\r", "\n")
    paragraphs = []
    for part in _BLANK_LINES.split(normalised):
        part = part.strip()
        if not part:
            continue
        lines = [html.escape(line.strip()) for line in part.split("\n")]
        paragraphs.append("<p>" + "<br>".join(lines) + "</p>")
    return "".join(paragraphs)


def html_to_text(markup: Optional[str]) -> str:
    """Flatten HTML to a single line of text for plain inputs."""
    if not markup:
        return ""
    soup = BeautifulSoup(markup, "html.parser")
    for br in soup.find_all("br"):
        br.replace_with(" ")
    text = soup.get_text(separator=" ")
    return _WHITESPACE.sub(" ", text.replace("\n", " ")).strip()
