from __future__ import annotations

import re
import unicodedata


_POSITION_SPLIT = re.compile(r"[;,\s]+")


def _fold(ch: str) -> str:
    out = []
    for c in unicodedata.normalize("NFD", ch.lower()):
        cat = unicodedata.category(c)
        if cat[0] in ("L", "N") or c.isspace():
            out.append(c)
    return "".join(out)


def normalize(text: str | None) -> str:
    """Reduce chat text to the form guesses and poll votes are compared in.

    Accents are decomposed and their marks dropped, anything that is not a
    letter, digit or whitespace is removed, and the result is lowercased and
    trimmed.
    """
    if not text:
        return ""
    return "".join(_fold(ch) for ch in text).strip()


def position_map(raw: str) -> list[int]:
    """For each character of ``normalize(raw)``, the index in ``raw`` it came from."""
    owners: list[int] = []
    folded = []
    for idx, ch in enumerate(raw or ""):
        piece = _fold(ch)
        folded.append(piece)
        owners.extend([idx] * len(piece))

    joined = "".join(folded)
    lead = len(joined) - len(joined.lstrip())
    size = len(joined.strip())
    return owners[lead:lead + size]


def parse_positions(raw: str) -> list[int]:
    """Parse "1;3", "2,4" or "1 2" into integers, skipping tokens that are not numbers."""
    result = []
    for token in _POSITION_SPLIT.split(raw or ""):
        if not token:
            continue
        try:
            result.append(int(token))
        except ValueError:
            continue
    return result
