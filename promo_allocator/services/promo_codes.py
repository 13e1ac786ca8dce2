from __future__ import annotations

from collections.abc import Iterable


def normalize_promo_code(raw_code: str) -> str:
    return raw_code.strip().upper()


def normalize_promo_code_batch(raw_codes: Iterable[str]) -> list[str]:
    """Normalize a batch, dropping blanks and repeats; first occurrence wins."""
    seen: set[str] = set()
    normalized_codes: list[str] = []
    for raw_code in raw_codes:
        normalized = normalize_promo_code(raw_code)
        if not normalized or normalized in seen:
            continue
        seen.add(normalized)
        normalized_codes.append(normalized)
    return normalized_codes


def parse_promo_code_lines(text: str) -> list[str]:
    return [line.strip() for line in text.splitlines() if line.strip()]
