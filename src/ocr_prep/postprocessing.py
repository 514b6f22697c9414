"""Post-processing for recognized text.

Tesseract output for a label or price tag is usually a handful of words
scattered across several lines with stray blank lines between them.  Before
the text is used as a lookup key every whitespace run (newlines, tabs, form
feeds included) is collapsed to a single space and the ends are trimmed.
"""

import re

_WHITESPACE = re.compile(r"\s+")


def normalize_whitespace(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()
