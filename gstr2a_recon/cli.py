from __future__ import annotations

import argparse
import json
import logging
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

from gstr2a_recon.core.config import settings
from gstr2a_recon.core.exceptions import LedgerSourceError, MalformedPayloadError, ReconciliationError
from gstr2a_recon.core.export import export_filename, write_csv
from gstr2a_recon.core.normalizer import parse_b2b_payload, parse_cdn_payload, parse_ledger_payload
from gstr2a_recon.core.period import TaxPeriod
from gstr2a_recon.core.reconciliation import empty_message, reconcile
from gstr2a_recon.db.ledger_store import load_purchase_ledger
from gstr2a_recon.schemas.authority import AuthorityFamily
from gstr2a_recon.schemas.reconciliation import DuplicatePolicy

logger = logging.getLogger(__name__)


def _load_json(path: Path | None, missing_error=MalformedPayloadError) -> Any:
    if path is None:
        return None
    try:
        text = path.read_text(encoding="utf-8-sig")
    except OSError as exc:
        raise missing_error(f"Cannot read {path}: {exc.strerror or exc}") from exc
    except UnicodeDecodeError as exc:
        raise MalformedPayloadError(f"Malformed source data: {path} is not UTF-8 text") from exc
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedPayloadError(f"Malformed source data: {path} is not valid JSON") from exc


def _tolerance(raw: str) -> Decimal:
    try:
        value = Decimal(raw)
    except InvalidOperation as exc:
        raise argparse.ArgumentTypeError(f"invalid tolerance: {raw!r}") from exc
    if not value.is_finite():
        raise argparse.ArgumentTypeError(f"tolerance must be a finite number: {raw!r}")
    if value < 0:
        raise argparse.ArgumentTypeError("tolerance must not be negative")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="GSTR-2A vs purchase ledger reconciliation")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser(
        "run", help="Reconcile saved GSTR-2A downloads against the purchase ledger")
    run_parser.add_argument(
        "--period",
        required=True,
        help="Tax period in MMYYYY format, e.g. 082025.",
    )
    run_parser.add_argument(
        "--b2b",
        type=Path,
        help="Saved GSTR-2A B2B JSON download.",
    )
    run_parser.add_argument(
        "--cdn",
        type=Path,
        help="Saved GSTR-2A CDN JSON download.",
    )
    run_parser.add_argument(
        "--ledger",
        type=Path,
        help="Purchase ledger JSON; defaults to the DBF_FOLDER_PATH pur.json/CASH.json files.",
    )
    run_parser.add_argument(
        "--tolerance",
        type=_tolerance,
        default=settings.DEFAULT_TOLERANCE,
        help="Absolute amount difference still treated as a match.",
    )
    run_parser.add_argument(
        "--duplicates",
        choices=[p.value for p in DuplicatePolicy],
        default=settings.DUPLICATE_POLICY,
        help="What to do when two records on one side share a key.",
    )
    run_parser.add_argument(
        "--out-dir",
        type=Path,
        default=Path("out"),
        help="Directory that will receive the comparison CSV.",
    )

    return parser


def run(args: argparse.Namespace) -> Path | None:
    period = TaxPeriod.parse(args.period)
    families = []
    if args.b2b:
        families.append(AuthorityFamily.B2B)
    if args.cdn:
        families.append(AuthorityFamily.CDN)

    b2b = parse_b2b_payload(_load_json(args.b2b))
    cdn = parse_cdn_payload(_load_json(args.cdn))
    if args.ledger:
        ledger = parse_ledger_payload(_load_json(args.ledger, missing_error=LedgerSourceError))
    else:
        ledger = load_purchase_ledger(settings.DBF_FOLDER_PATH, period)

    report = reconcile(
        b2b=b2b,
        cdn=cdn,
        ledger=ledger,
        period=period,
        tolerance=args.tolerance,
        families=families,
        duplicate_policy=DuplicatePolicy(args.duplicates),
    )

    summary = report.summary
    print(
        f"Matched: {summary.matched}  Mismatched: {summary.mismatched}  "
        f"Missing in Ledger: {summary.missing_in_ledger}  "
        f"Missing in Authority: {summary.missing_in_authority}"
    )
    if report.is_empty:
        print(empty_message(period))
        return None

    args.out_dir.mkdir(parents=True, exist_ok=True)
    out_path = args.out_dir / export_filename(period.label)
    out_path.write_text(write_csv(report.results), encoding="utf-8")
    print(f"Wrote {out_path}")
    return out_path


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=settings.LOG_LEVEL, format="%(levelname)s %(name)s: %(message)s")
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "run":
        try:
            run(args)
        except ReconciliationError as exc:
            logger.error(exc.message)
            print(f"Error: {exc.message}")
            return 2
        return 0

    parser.error("Unknown command")
    return 1


if __name__ == "__main__":  # pragma: no cover - exercised via CLI entry point
    raise SystemExit(main())
