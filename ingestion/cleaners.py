import re
import unicodedata

_ZERO_WIDTH = re.compile("[\u200b\u200c\u200d\u2060\ufeff]")

# Whole lines that are site chrome rather than documentation content.
_NOISE_LINE_PATTERNS = [
    re.compile(r"^last updated\b.{0,40}$", re.I),
    re.compile(r"^was this helpful\??$", re.I),
    re.compile(
        r"^(copy link|edit on github|powered by gitbook|on this page|"
        r"table of contents|skip to content|previous|next)$",
        re.I,
    ),
    re.compile(r"^(cookie|accept all|accept cookies|privacy policy|terms of service)$", re.I),
    re.compile(r"^[\|\-\*_=#~]{3,}$"),
]


def normalize_text(s: str) -> str:
    """Unicode + whitespace normalization that keeps paragraph breaks (blank lines)."""
    s = unicodedata.normalize("NFKC", s)
    s = _ZERO_WIDTH.sub("", s)
    s = s.replace("\u00a0", " ").replace("\r\n", "\n").replace("\r", "\n")
    s = re.sub(r"[ \t\f\v]+", " ", s)
    s = re.sub(r" *\n *", "\n", s)
    s = re.sub(r"\n{3,}", "\n\n", s)
    return s.strip()


def flatten_whitespace(s: str) -> str:
    """Collapse every whitespace run, newlines included, into one space."""
    return re.sub(r"\s+", " ", normalize_text(s)).strip()


def strip_noise_lines(text: str) -> str:
    kept = [
        line
        for line in text.split("\n")
        if not any(p.match(line.strip()) for p in _NOISE_LINE_PATTERNS)
    ]
    return "\n".join(kept)


def dedupe_paragraphs(text: str) -> str:
    """Drop paragraphs that repeat an earlier one verbatim (case-insensitive)."""
    seen = set()
    out = []
    for para in text.split("\n\n"):
        key = para.strip().lower()
        if not key or key in seen:
            continue
        seen.add(key)
        out.append(para.strip())
    return "\n\n".join(out)


def clean_text(text: str) -> str:
    """Full cleaning pass. Idempotent: clean_text(clean_text(x)) == clean_text(x)."""
    text = normalize_text(text)
    text = strip_noise_lines(text)
    text = normalize_text(text)
    return normalize_text(dedupe_paragraphs(text))


def clamp_text(text: str, max_chars: int) -> str:
    if len(text) <= max_chars:
        return text
    return text[:max_chars].strip()
