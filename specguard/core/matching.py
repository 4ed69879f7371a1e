from __future__ import annotations

from typing import Sequence

from specguard.core.compliance_types import MatchMode


def normalize_text(title: str, description: str) -> str:
    """Text every deterministic rule is evaluated against."""
    return f"{title or ''} {description or ''}".lower()


def keywords_match(keywords: Sequence[str], mode: MatchMode, text: str) -> bool:
    """Literal substring matching; `text` must already be normalized."""
    if mode == MatchMode.ALL:
        return all(keyword.lower() in text for keyword in keywords)
    return any(keyword.lower() in text for keyword in keywords)
