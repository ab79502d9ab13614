from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from boxoffice_etl.adapters import load_source
from boxoffice_etl.core.config import settings
from boxoffice_etl.core.errors import BoxOfficeError
from boxoffice_etl.core.logging import configure_logging
from boxoffice_etl.core.models import RunSummary
from boxoffice_etl.core.pipeline import run_comp_report, run_package_report, run_sales_report
from boxoffice_etl.storage.bigquery import BigQueryWarehouse

log = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="boxoffice-etl", description="Ingestion des rapports de billetterie")
    sub = parser.add_subparsers(dest="command", required=True)

    sales = sub.add_parser("sales", help="rapport de ventes par performance")
    sales.add_argument("source", help="fichier PDF/texte ou URL")

    comps = sub.add_parser("comps", help="rapport 'Performance Ticket Counts' (billets de faveur)")
    comps.add_argument("source")

    packages = sub.add_parser("packages", help="rapport de ventes d'abonnements")
    packages.add_argument("source")
    packages.add_argument("--category", help="Classical, Pops, Flex, Family, Specials")
    packages.add_argument("--subject", help="objet du mail d'origine")
    return parser


async def run(args: argparse.Namespace) -> RunSummary:
    report = await load_source(args.source)
    warehouse = BigQueryWarehouse(cfg=settings)
    if args.command == "sales":
        return await run_sales_report(report, warehouse, source=args.source)
    if args.command == "comps":
        return await run_comp_report(report, warehouse, source=args.source)
    return await run_package_report(report, warehouse, filename=Path(args.source).name,
                                    subject=args.subject, category=args.category)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(getattr(logging, settings.log_level.upper(), logging.INFO))
    try:
        summary = asyncio.run(run(args))
    except BoxOfficeError as e:
        print(json.dumps({"success": False, "execution_id": e.execution_id,
                          "error": str(e), "type": type(e).__name__}), file=sys.stderr)
        return 1
    print(summary.model_dump_json(indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
