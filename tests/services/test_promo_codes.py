from promo_allocator.services.promo_codes import (
    normalize_promo_code,
    normalize_promo_code_batch,
    parse_promo_code_lines,
)


def test_normalize_promo_code_trims_and_uppercases() -> None:
    assert normalize_promo_code("  digi-34 \n") == "DIGI-34"


def test_normalize_promo_code_batch_drops_blanks_and_repeats() -> None:
    assert normalize_promo_code_batch(["a1", " A1 ", "", "  ", "b2", "a1"]) == ["A1", "B2"]


def test_parse_promo_code_lines_splits_admin_input() -> None:
    text = "DIGI34\n  FREO2  \n\n\r\nLPOS4\n"
    assert parse_promo_code_lines(text) == ["DIGI34", "FREO2", "LPOS4"]
