from __future__ import annotations

import argparse
import asyncio
import json
from collections.abc import Sequence
from dataclasses import asdict
from pathlib import Path

import structlog

from promo_allocator.codes.batch import generate_raw_codes, load_raw_codes, write_raw_codes
from promo_allocator.codes.service import PromoCodeManager
from promo_allocator.core.config import get_settings
from promo_allocator.core.logging import configure_logging
from promo_allocator.main import build_code_manager
from promo_allocator.services.promo_codes import normalize_promo_code_batch
from promo_allocator.storage.factory import build_key_value_store

logger = structlog.get_logger("scripts.code_pool_tool")

MODES = ("init", "add")


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Promo code pool import/generation tool")
    parser.add_argument("--mode", choices=MODES, default="add")
    parser.add_argument("--import-csv", type=Path)
    parser.add_argument("--count", type=int)
    parser.add_argument("--prefix", default="")
    parser.add_argument("--token-length", type=int, default=8)
    parser.add_argument("--output-csv", type=Path)
    parser.add_argument("--dry-run", action="store_true")
    parser.add_argument("--stats", action="store_true", help="print pool stats and exit")
    return parser.parse_args(argv)


def _validate_args(args: argparse.Namespace) -> None:
    if args.stats:
        return
    if args.import_csv and args.count:
        raise ValueError("use either --import-csv or --count")
    if not args.import_csv and not args.count:
        raise ValueError("one of --import-csv or --count is required")
    if args.count is not None and args.count <= 0:
        raise ValueError("--count must be positive")
    if args.token_length <= 0:
        raise ValueError("--token-length must be positive")


def _build_batch(args: argparse.Namespace) -> list[str]:
    if args.import_csv:
        raw_codes = load_raw_codes(args.import_csv)
    else:
        prefix = args.prefix.strip().upper()
        if prefix and not prefix.endswith("-"):
            prefix = f"{prefix}-"
        raw_codes = generate_raw_codes(
            count=args.count,
            token_length=args.token_length,
            prefix=prefix,
        )

    batch = normalize_promo_code_batch(raw_codes)
    if not batch:
        raise ValueError("no promo codes to process")
    return batch


async def _apply_batch(manager: PromoCodeManager, *, mode: str, batch: list[str]) -> bool:
    if mode == "init":
        return await manager.initialize_code_database(batch)
    return await manager.add_codes_to_database(batch)


async def _run(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    _validate_args(args)

    settings = get_settings()
    configure_logging(settings.log_level, json_output=False)
    store = build_key_value_store(settings)
    manager = build_code_manager(settings, store)
    try:
        if args.stats:
            stats = await manager.get_code_database_stats()
            print(json.dumps(asdict(stats)))  # noqa: T201
            return 0

        batch = _build_batch(args)
        if args.output_csv:
            args.output_csv.parent.mkdir(parents=True, exist_ok=True)
            write_raw_codes(args.output_csv, batch)

        if args.dry_run:
            print(f"processed={len(batch)} written=0 mode={args.mode}")  # noqa: T201
            return 0

        if settings.storage_backend.strip().lower() == "memory":
            logger.warning("code_pool_tool_memory_backend", detail="codes are not persisted")

        if not await _apply_batch(manager, mode=args.mode, batch=batch):
            logger.error("code_pool_tool_write_failed", mode=args.mode)
            return 1

        stats = await manager.get_code_database_stats()
        print(  # noqa: T201
            f"processed={len(batch)} mode={args.mode} available={stats.available_count}"
        )
        return 0
    finally:
        await store.close()


def main() -> int:
    return asyncio.run(_run())


if __name__ == "__main__":
    raise SystemExit(main())
