import hashlib


def sha1_text(s: str) -> str:
    return hashlib.sha1(s.encode("utf-8")).hexdigest()


def make_chunk_id(url: str, section: str, index: int) -> str:
    """Deterministic chunk id: same page, section label and sequence index give the same id."""
    return f"page-{sha1_text(url)[:12]}-{sha1_text(section)[:8]}-{index}"
