"""Labor settlement command line interface.

Provides operational tools for:
- Creating the database schema
- Converting schedule entries that are due into time records
- Summarizing unpaid labor
- Settling a draft pay run

Usage:
    python -m labor_settlement.cli init-db
    python -m labor_settlement.cli convert-due --as-of 2024-06-30
    python -m labor_settlement.cli unpaid-summary --start 2024-06-01 --end 2024-06-30
    python -m labor_settlement.cli mark-paid --pay-run-id X --payment-date 2024-07-05
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Awaitable, Callable
from contextlib import AbstractAsyncContextManager
from datetime import date
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from labor_settlement.calculators.cost import CostCalculator
from labor_settlement.config import business_today, configure_logging
from labor_settlement.database import create_schema, dispose_db, get_session, init_db
from labor_settlement.errors import LaborPipelineError
from labor_settlement.services.conversion_service import ConversionService
from labor_settlement.services.settlement_service import SettlementService
from labor_settlement.services.time_record_service import TimeRecordService

logger = logging.getLogger(__name__)


def parse_date(s: str) -> date:
    """Parse ISO date string."""
    return date.fromisoformat(s)


def parse_uuid(s: str) -> UUID:
    """Parse UUID string."""
    return UUID(s)


class LaborCli:
    """Labor settlement command line interface."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        self.session_factory = session_factory
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="python -m labor_settlement.cli",
            description="Labor settlement operational tools",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        # init-db command
        subparsers.add_parser(
            "init-db",
            help="Create database tables that do not exist yet",
        )

        # convert-due command
        convert_due = subparsers.add_parser(
            "convert-due",
            help="Convert schedule entries dated on or before a day into time records",
        )
        convert_due.add_argument(
            "--as-of",
            type=parse_date,
            help="Convert entries up to and including this date (default: today in BUSINESS_TIMEZONE)",
        )

        # unpaid-summary command
        unpaid = subparsers.add_parser(
            "unpaid-summary",
            help="Show totals of unpaid time records",
        )
        unpaid.add_argument(
            "--start",
            type=parse_date,
            help="Earliest work date (ISO format)",
        )
        unpaid.add_argument(
            "--end",
            type=parse_date,
            help="Latest work date (ISO format)",
        )
        unpaid.add_argument(
            "--company-id",
            type=parse_uuid,
            help="Paying company of the projects worked on",
        )
        unpaid.add_argument(
            "--json",
            action="store_true",
            help="Print the summary as JSON",
        )

        # mark-paid command
        mark_paid = subparsers.add_parser(
            "mark-paid",
            help="Settle a draft pay run and its time records",
        )
        mark_paid.add_argument(
            "--pay-run-id",
            type=parse_uuid,
            required=True,
            help="Pay run to settle",
        )
        mark_paid.add_argument(
            "--payment-date",
            type=parse_date,
            help="Payment date (default: today)",
        )

        return parser

    def run(self, args: list[str] | None = None) -> int:
        """Run the CLI with given arguments."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 1

        configure_logging()

        # Dispatch to command handler
        handlers: dict[str, Callable[[argparse.Namespace], Awaitable[int]]] = {
            "init-db": self._cmd_init_db,
            "convert-due": self._cmd_convert_due,
            "unpaid-summary": self._cmd_unpaid_summary,
            "mark-paid": self._cmd_mark_paid,
        }

        handler = handlers.get(parsed.command)
        if handler is None:
            print(f"Unknown command: {parsed.command}", file=sys.stderr)
            return 1

        return asyncio.run(self._run_handler(handler, parsed))

    async def _run_handler(
        self,
        handler: Callable[[argparse.Namespace], Awaitable[int]],
        args: argparse.Namespace,
    ) -> int:
        try:
            return await handler(args)
        except LaborPipelineError as exc:
            print(f"Error [{exc.code}]: {exc}", file=sys.stderr)
            return 1
        finally:
            if self.session_factory is None:
                await dispose_db()

    def _session(self) -> AbstractAsyncContextManager[AsyncSession]:
        return get_session(self.session_factory)

    async def _cmd_init_db(self, args: argparse.Namespace) -> int:
        """Create the schema."""
        if self.session_factory is not None:
            engine = self.session_factory.kw["bind"]
        else:
            engine, _ = init_db()
        await create_schema(engine)
        print("Schema created")
        return 0

    async def _cmd_convert_due(self, args: argparse.Namespace) -> int:
        """Convert due schedule entries."""
        async with self._session() as session:
            records = await ConversionService(session, today=business_today).convert_due(as_of=args.as_of)

        as_of = args.as_of or business_today()
        print(f"Converted {len(records)} schedule entr{'y' if len(records) == 1 else 'ies'} as of {as_of}")
        for record in records:
            print(
                f"  {record.work_date} worker {record.worker_id}: "
                f"{record.hours_worked}h = {CostCalculator.round_to_cents(record.labor_cost)}"
            )
        return 0

    async def _cmd_unpaid_summary(self, args: argparse.Namespace) -> int:
        """Show unpaid totals."""
        async with self._session() as session:
            summary = await TimeRecordService(session).unpaid_summary(
                start=args.start,
                end=args.end,
                company_id=args.company_id,
            )

        if args.json:
            print(
                json.dumps(
                    {
                        "total_records": summary.total_records,
                        "total_hours": str(summary.total_hours),
                        "total_amount": str(CostCalculator.round_to_cents(summary.total_amount)),
                        "workers_count": summary.workers_count,
                    }
                )
            )
            return 0

        print("Unpaid Time Records")
        print("=" * 40)
        print(f"Records: {summary.total_records}")
        print(f"Workers: {summary.workers_count}")
        print(f"Hours:   {summary.total_hours}")
        print(f"Amount:  {CostCalculator.round_to_cents(summary.total_amount)}")
        return 0

    async def _cmd_mark_paid(self, args: argparse.Namespace) -> int:
        """Settle a pay run."""
        async with self._session() as session:
            pay_run = await SettlementService(session, today=business_today).mark_paid(
                args.pay_run_id,
                payment_date=args.payment_date,
            )

        print(
            f"Pay run {pay_run.pay_run_id} paid on {pay_run.payment_date}: "
            f"{CostCalculator.round_to_cents(pay_run.total_amount)}"
        )
        return 0


def main() -> int:
    """CLI entry point."""
    cli = LaborCli()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
