"""Planning CLI.

Usage:
    python cli.py planning init-db
    python cli.py planning generate 12 --actor 1
    python cli.py planning complete 345 --actual-date 2024-03-20 --notes "Bait stations refilled"
    python cli.py planning postpone 346 2024-04-25 --reason "Site closed"
    python cli.py planning due --days 14
    python cli.py planning overdue
    python cli.py planning week
    python cli.py planning stats
    python cli.py planning alerts

Every command prints JSON on stdout. --db overrides DATABASE_URL.
"""
import argparse
import json
import logging
import sys
from datetime import date
from typing import Optional

from .alerts import collect_alerts
from .completion import complete_intervention
from .config import get_config
from .dashboard import (
    get_dashboard_stats,
    intervention_to_dict,
    list_current_week,
    list_due_within,
    list_overdue,
)
from .database import get_engine, init_db, session_scope
from .errors import PlanningError
from .generator import generate_initial_plan
from .reschedule import postpone

logger = logging.getLogger(__name__)


def _iso_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date '{value}', expected YYYY-MM-DD")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Service Planning")
    parser.add_argument("--db", help="SQLAlchemy database URL")
    parser.add_argument("--today", type=_iso_date, help="Reference day (YYYY-MM-DD)")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create the planning tables")

    gen = sub.add_parser("generate", help="Generate the initial plan of a contract")
    gen.add_argument("contract_id", type=int)
    gen.add_argument("--actor", type=int, help="User id")

    done = sub.add_parser("complete", help="Mark an intervention done")
    done.add_argument("intervention_id", type=int)
    done.add_argument("--actor", type=int, help="User id")
    done.add_argument("--actual-date", type=_iso_date, help="Real completion day")
    done.add_argument("--create-next", action="store_true",
                      help="Create the follow-up even without auto-create")
    done.add_argument("--notes", help="Field notes")

    post = sub.add_parser("postpone", help="Move an intervention to a new date")
    post.add_argument("intervention_id", type=int)
    post.add_argument("new_date", type=_iso_date)
    post.add_argument("--reason", required=True)
    post.add_argument("--actor", type=int, help="User id")

    due = sub.add_parser("due", help="Interventions to schedule in the next days")
    due.add_argument("--days", type=int, default=None)

    sub.add_parser("overdue", help="Open interventions planned in the past")
    sub.add_parser("week", help="Interventions of the current week")
    sub.add_parser("stats", help="Dashboard counters")
    sub.add_parser("alerts", help="Contracts needing attention")
    return parser


def run(args: argparse.Namespace, session) -> object:
    """Execute one command and return a JSON-serializable payload."""
    today: Optional[date] = args.today

    if args.command == "generate":
        result = generate_initial_plan(session, args.contract_id, args.actor, today=today)
        return {
            "contract_id": result.contract.id,
            "count": result.count,
            "created": [intervention_to_dict(i, today) for i in result.created_interventions],
        }

    if args.command == "complete":
        result = complete_intervention(
            session, args.intervention_id, args.actor,
            actual_date=args.actual_date,
            create_next=args.create_next,
            notes=args.notes,
        )
        return {
            "intervention": intervention_to_dict(result.intervention, today),
            "next_created": result.next_created,
            "next_intervention": (
                intervention_to_dict(result.next_intervention, today)
                if result.next_intervention else None
            ),
            "suggested_date": result.suggested_date.isoformat() if result.suggested_date else None,
            "operations_remaining": result.operations_remaining,
            "shifted": [i.id for i in result.shifted],
            "skipped_reason": result.skipped_reason,
        }

    if args.command == "postpone":
        intervention = postpone(session, args.intervention_id, args.actor,
                                args.new_date, args.reason, today=today)
        return intervention_to_dict(intervention, today)

    if args.command == "due":
        return [intervention_to_dict(i, today)
                for i in list_due_within(session, args.days, today)]
    if args.command == "overdue":
        return [intervention_to_dict(i, today) for i in list_overdue(session, today)]
    if args.command == "week":
        return [intervention_to_dict(i, today) for i in list_current_week(session, today)]
    if args.command == "stats":
        return get_dashboard_stats(session, today)
    if args.command == "alerts":
        return collect_alerts(session, today)

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    engine = get_engine(args.db or get_config().database_url)
    try:
        if args.command == "init-db":
            init_db(engine)
            payload = {"initialized": True}
        else:
            with session_scope(engine) as session:
                payload = run(args, session)
    except PlanningError as e:
        logger.error(f"✗ {e.message}")
        return 1
    finally:
        engine.dispose()

    json.dump(payload, sys.stdout, indent=2, default=str)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
