from __future__ import annotations

import re
from typing import List

TAB_RUN_RE = re.compile(r"\t+")


def normalize_lines(text: str) -> List[str]:
    """
    Split extracted text into trimmed, non-empty lines. Runs of tabs become a
    single space; nothing else inside a line is touched.
    """
    lines: List[str] = []
    for raw in (text or "").split("\n"):
        line = TAB_RUN_RE.sub(" ", raw).strip()
        if line:
            lines.append(line)
    return lines
