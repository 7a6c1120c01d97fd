import re


def normalize_text(text: str) -> str:
    """Standardize line breaks and whitespace in extracted strategy text.

    Converts CRLF/CR line breaks to newlines, drops NUL bytes, collapses
    runs of spaces/tabs, and reduces excessive blank lines.
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n").replace("\x00", "")
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r" +\n", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def truncate(text: str, max_chars: int, *, suffix: str = "") -> str:
    """Cut ``text`` to ``max_chars`` (suffix included) when it is longer."""
    if len(text) <= max_chars:
        return text
    return text[: max_chars - len(suffix)] + suffix
