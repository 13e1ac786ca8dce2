from __future__ import annotations

import csv
import secrets
from pathlib import Path

from promo_allocator.services.promo_codes import normalize_promo_code, parse_promo_code_lines

CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def generate_raw_codes(
    *,
    count: int,
    token_length: int = 8,
    prefix: str = "",
    existing_codes: set[str] | None = None,
) -> list[str]:
    if count <= 0:
        raise ValueError("count must be positive")
    if token_length <= 0:
        raise ValueError("token_length must be positive")

    existing = existing_codes if existing_codes is not None else set()
    generated: list[str] = []
    attempts = 0
    max_attempts = max(100, count * 50)

    while len(generated) < count:
        attempts += 1
        if attempts > max_attempts:
            raise RuntimeError("unable to generate unique promo codes")

        token = "".join(secrets.choice(CODE_ALPHABET) for _ in range(token_length))
        raw_code = normalize_promo_code(f"{prefix}{token}")
        if raw_code in existing:
            continue

        existing.add(raw_code)
        generated.append(raw_code)

    return generated


def load_raw_codes(path: Path) -> list[str]:
    """Read codes from a CSV with a ``raw_code`` column, or one code per line."""
    with path.open("r", encoding="utf-8", newline="") as file:
        reader = csv.DictReader(file)
        if "raw_code" in (reader.fieldnames or []):
            return [
                (row.get("raw_code") or "").strip()
                for row in reader
                if (row.get("raw_code") or "").strip()
            ]

    return parse_promo_code_lines(path.read_text(encoding="utf-8"))


def write_raw_codes(path: Path, codes: list[str]) -> None:
    with path.open("w", encoding="utf-8", newline="") as file:
        writer = csv.writer(file)
        writer.writerow(["raw_code"])
        for code in codes:
            writer.writerow([code])
