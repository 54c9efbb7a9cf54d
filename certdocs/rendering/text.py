"""Text preparation for fixed-box drawing.

Standard PDF fonts measure and encode glyphs per font encoding, so every
string is reduced to printable ASCII before it is measured or drawn.
"""

import unicodedata

from reportlab.pdfbase.pdfmetrics import stringWidth

ELLIPSIS = "..."

_SUBSTITUTIONS: dict[str, str] = {
    "‘": "'",
    "’": "'",
    "‚": "'",
    "“": '"',
    "”": '"',
    "„": '"',
    "–": "-",
    "—": "-",
    "−": "-",
    "•": "-",
    "·": "-",
    "…": "...",
    " ": " ",
    " ": " ",
    " ": " ",
    "€": "EUR",
    "£": "GBP",
    "¥": "JPY",
    "©": "(c)",
    "®": "(R)",
    "™": "TM",
    "×": "x",
    "ß": "ss",
    "æ": "ae",
    "Æ": "AE",
    "ø": "o",
    "Ø": "O",
    "ł": "l",
    "Ł": "L",
}


def sanitize(text: str | None) -> str:
    """Map text onto printable ASCII.

    Known typographic characters are substituted, accented letters lose their
    marks, whitespace runs collapse to one space and anything left outside
    0x20-0x7E is dropped.
    """
    if not text:
        return ""
    substituted = "".join(_SUBSTITUTIONS.get(ch, ch) for ch in str(text))
    decomposed = unicodedata.normalize("NFKD", substituted)
    kept = []
    for ch in decomposed:
        if unicodedata.combining(ch):
            continue
        if ch.isspace():
            kept.append(" ")
        elif " " <= ch <= "~":
            kept.append(ch)
    return " ".join("".join(kept).split())


def text_width(text: str, font: str, size: float) -> float:
    return stringWidth(text, font, size)


def fit_with_ellipsis(text: str, width: float, font: str, size: float) -> str:
    """Cut ``text`` so that it plus an ellipsis fits in ``width``."""
    if text_width(text, font, size) <= width:
        return text
    cut = text
    while cut and text_width(cut + ELLIPSIS, font, size) > width:
        cut = cut[:-1]
    return cut.rstrip() + ELLIPSIS


def wrap_text(
    text: str | None,
    width: float,
    font: str,
    size: float,
    max_lines: int,
) -> list[str]:
    """Greedy word wrap into at most ``max_lines`` lines of ``width`` points.

    Words are appended while they fit; an overflowing word starts a new line,
    and a single word wider than the box is broken by character. Once the
    line budget is spent the remaining text is hard-truncated with an
    ellipsis on the last line.
    """
    clean = sanitize(text)
    if not clean or max_lines <= 0:
        return []

    lines: list[str] = []
    current = ""
    words = clean.split(" ")
    index = 0
    while index < len(words):
        word = words[index]
        candidate = f"{current} {word}" if current else word
        if text_width(candidate, font, size) <= width:
            current = candidate
            index += 1
            continue
        if not current:
            head, tail = _break_word(word, width, font, size)
            lines.append(head)
            words[index] = tail
        else:
            lines.append(current)
            current = ""
        if len(lines) == max_lines:
            remainder = " ".join([current, *words[index:]]).strip()
            if remainder:
                lines[-1] = fit_with_ellipsis(lines[-1] + " " + remainder, width, font, size)
            return lines
    if current:
        lines.append(current)
    return lines


def _break_word(word: str, width: float, font: str, size: float) -> tuple[str, str]:
    cut = len(word)
    while cut > 1 and text_width(word[:cut], font, size) > width:
        cut -= 1
    return word[:cut], word[cut:]
