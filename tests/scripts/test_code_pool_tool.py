from __future__ import annotations

import pytest

from promo_allocator.codes.service import PromoCodeManager
from scripts.code_pool_tool import _apply_batch, _build_batch, _parse_args, _validate_args


def test_validate_args_requires_exactly_one_source(tmp_path) -> None:
    with pytest.raises(ValueError, match="one of"):
        _validate_args(_parse_args([]))
    with pytest.raises(ValueError, match="either"):
        _validate_args(_parse_args(["--count", "3", "--import-csv", str(tmp_path / "x.csv")]))
    with pytest.raises(ValueError, match="positive"):
        _validate_args(_parse_args(["--count", "-1"]))


def test_validate_args_allows_stats_without_source() -> None:
    _validate_args(_parse_args(["--stats"]))


def test_build_batch_generates_prefixed_codes() -> None:
    batch = _build_batch(_parse_args(["--count", "4", "--prefix", "spring", "--token-length", "5"]))

    assert len(batch) == 4
    assert all(code.startswith("SPRING-") for code in batch)


def test_build_batch_normalizes_imported_codes(tmp_path) -> None:
    path = tmp_path / "codes.csv"
    path.write_text("raw_code\ndigi34\nDIGI34\n freo2\n", encoding="utf-8")

    assert _build_batch(_parse_args(["--import-csv", str(path)])) == ["DIGI34", "FREO2"]


def test_build_batch_rejects_empty_import(tmp_path) -> None:
    path = tmp_path / "codes.csv"
    path.write_text("raw_code\n\n", encoding="utf-8")

    with pytest.raises(ValueError, match="no promo codes"):
        _build_batch(_parse_args(["--import-csv", str(path)]))


@pytest.mark.asyncio
async def test_apply_batch_initializes_then_adds(store) -> None:
    manager = PromoCodeManager(store)

    assert await _apply_batch(manager, mode="init", batch=["A1", "B2"]) is True
    assert await _apply_batch(manager, mode="add", batch=["B2", "C3"]) is True

    assert [entry.code for entry in await manager.get_available_codes()] == ["A1", "B2", "C3"]
