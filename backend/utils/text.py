from __future__ import annotations


def title_from_message(text: str, max_len: int = 60) -> str:
    """Derive a short chat title from the first user message."""
    t = (text or "").strip()
    if not t:
        return "New chat"
    t = t.splitlines()[0].replace("`", "")
    t = " ".join(t.split())
    if len(t) > max_len:
        t = t[:max_len].rsplit(" ", 1)[0] or t[:max_len]
    while t and t[-1] in ".!?;,:":
        t = t[:-1]
    return t.strip() or "New chat"
