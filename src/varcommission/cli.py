"""Commission engine CLI.

Usage:
    python -m varcommission.cli status
    python -m varcommission.cli rules list
    python -m varcommission.cli rules show --id basic-prestador
    python -m varcommission.cli rules add --json '{"name": "Promo", "base_rate": 3}'
    python -m varcommission.cli calculate --amount 1000 --user-id 7 --user-type prestador
    python -m varcommission.cli simulate --amount 1000 --user-type prestador --events 1
    python -m varcommission.cli stats --period week
    python -m varcommission.cli check-config

Directories resolve from --config/--data, then VARCOMMISSION_CONFIG_DIR /
VARCOMMISSION_DATA_DIR (a .env file at the project root is honoured), then
the repo defaults. Rules are seeded from the policy on every invocation:
rule edits apply to that invocation only.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from varcommission.models.calculation import StatsPeriod
from varcommission.models.rules import RuleDraft, UserType, parse_rule_updates
from varcommission.errors import ValidationError
from varcommission.persistence.calculation_log import CalculationLog
from varcommission.policy.resolver import PolicyResolver
from varcommission.service import CommissionService


ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG = ROOT / "config"
DEFAULT_DATA = ROOT / "data"

logger = logging.getLogger(__name__)


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def _fail(errors: list[str]) -> int:
    print(f"Failed: {'; '.join(errors)}", file=sys.stderr)
    return 1


def _make_service(args: argparse.Namespace) -> CommissionService:
    """Create a CommissionService with a durable calculation log."""
    data_dir: Path = args.data
    data_dir.mkdir(parents=True, exist_ok=True)
    resolver = PolicyResolver.from_config_dir(args.config)
    log = CalculationLog(storage_path=data_dir / "calculations.jsonl")
    return CommissionService(resolver, calculation_log=log)


def _load_json_arg(args: argparse.Namespace) -> dict[str, Any]:
    if getattr(args, "file", None):
        return json.loads(Path(args.file).read_text(encoding="utf-8"))
    return json.loads(args.json)


def cmd_status(args: argparse.Namespace) -> int:
    _print_json(_make_service(args).status())
    return 0


def cmd_rules_list(args: argparse.Namespace) -> int:
    service = _make_service(args)
    _print_json([r.to_dict() for r in service.get_all_rules()])
    return 0


def cmd_rules_show(args: argparse.Namespace) -> int:
    rule = _make_service(args).get_rule_by_id(args.id)
    if rule is None:
        return _fail([f"Rule not found: {args.id}"])
    _print_json(rule.to_dict())
    return 0


def cmd_rules_add(args: argparse.Namespace) -> int:
    service = _make_service(args)
    try:
        draft = RuleDraft.from_dict(_load_json_arg(args))
    except (ValueError, KeyError, TypeError) as exc:
        return _fail([f"Invalid rule: {exc}"])
    result = service.add_rule(draft)
    if not result.success:
        return _fail(result.errors)
    _print_json(result.data["rule"])
    return 0


def cmd_rules_update(args: argparse.Namespace) -> int:
    service = _make_service(args)
    try:
        updates = parse_rule_updates(_load_json_arg(args))
    except (ValueError, KeyError, TypeError) as exc:
        return _fail([f"Invalid update: {exc}"])
    result = service.update_rule(args.id, updates)
    if not result.success:
        return _fail(result.errors)
    _print_json(result.data["rule"])
    return 0


def cmd_rules_delete(args: argparse.Namespace) -> int:
    result = _make_service(args).delete_rule(args.id)
    if not result.success:
        return _fail(result.errors)
    print(f"Deleted rule: {args.id}")
    return 0


def cmd_calculate(args: argparse.Namespace) -> int:
    service = _make_service(args)
    try:
        calc = service.calculate_commission(
            args.amount,
            args.user_id,
            args.user_type,
            args.category,
            args.plan,
            args.events,
        )
    except ValidationError as exc:
        return _fail(exc.errors)
    _print_json(calc.to_dict())
    return 0


def cmd_simulate(args: argparse.Namespace) -> int:
    service = _make_service(args)
    try:
        result = service.simulate_commission(
            args.amount,
            args.user_type,
            args.category,
            args.plan,
            args.events,
        )
    except ValidationError as exc:
        return _fail(exc.errors)
    _print_json(result.to_dict())
    return 0


def cmd_stats(args: argparse.Namespace) -> int:
    stats = _make_service(args).get_commission_stats(args.period)
    _print_json(stats.to_dict())
    return 0


def cmd_check_config(args: argparse.Namespace) -> int:
    """Validate the policy config (default rules, simulation, stats)."""
    try:
        resolver = PolicyResolver.from_config_dir(args.config)
    except (OSError, json.JSONDecodeError) as exc:
        return _fail([f"Cannot load policy: {exc}"])
    errors = resolver.check()
    if errors:
        for error in errors:
            print(f"  - {error}", file=sys.stderr)
        return 1
    print(f"Policy {resolver.version}: OK")
    return 0


def _add_transaction_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--amount", required=True, help="Transaction amount (Decimal)")
    parser.add_argument(
        "--user-type", required=True,
        choices=[u.value for u in UserType if u != UserType.ALL],
    )
    parser.add_argument("--category", help="Service category")
    parser.add_argument("--plan", help="User plan (default from policy)")
    parser.add_argument("--events", type=int, default=0, help="User event count (default: 0)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="varcommission",
        description="Variable marketplace commission engine CLI",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to config directory (default: config/)",
    )
    parser.add_argument(
        "--data",
        type=Path,
        default=None,
        help="Path to data directory for the calculation log (default: data/)",
    )
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("status", help="Show engine status")

    # rules
    p_rules = sub.add_parser("rules", help="Inspect or edit commission rules")
    rules_sub = p_rules.add_subparsers(dest="rules_command")
    rules_sub.add_parser("list", help="List rules by priority")
    p_show = rules_sub.add_parser("show", help="Show one rule")
    p_show.add_argument("--id", required=True, help="Rule ID")
    p_add = rules_sub.add_parser("add", help="Add a rule from JSON")
    source = p_add.add_mutually_exclusive_group(required=True)
    source.add_argument("--json", help="Rule draft as JSON")
    source.add_argument("--file", help="Path to a JSON rule draft")
    p_update = rules_sub.add_parser("update", help="Apply a partial update")
    p_update.add_argument("--id", required=True, help="Rule ID")
    p_update.add_argument("--json", required=True, help="Fields to update as JSON")
    p_delete = rules_sub.add_parser("delete", help="Delete a rule")
    p_delete.add_argument("--id", required=True, help="Rule ID")

    # calculate
    p_calc = sub.add_parser("calculate", help="Calculate and record a commission")
    _add_transaction_args(p_calc)
    p_calc.add_argument("--user-id", type=int, required=True, help="User ID")

    # simulate
    p_sim = sub.add_parser("simulate", help="What-if commission scenarios")
    _add_transaction_args(p_sim)

    # stats
    p_stats = sub.add_parser("stats", help="Commission statistics")
    p_stats.add_argument(
        "--period", default="month", choices=[p.value for p in StatsPeriod],
    )

    sub.add_parser("check-config", help="Validate the policy config")

    return parser


def _resolve_dirs(args: argparse.Namespace) -> None:
    """Fill --config/--data from the environment or repo defaults."""
    load_dotenv(ROOT / ".env")
    if args.config is None:
        args.config = Path(os.getenv("VARCOMMISSION_CONFIG_DIR") or DEFAULT_CONFIG)
    if args.data is None:
        args.data = Path(os.getenv("VARCOMMISSION_DATA_DIR") or DEFAULT_DATA)


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    _resolve_dirs(args)
    logger.debug("config=%s data=%s", args.config, args.data)

    if args.command == "rules":
        handlers = {
            "list": cmd_rules_list,
            "show": cmd_rules_show,
            "add": cmd_rules_add,
            "update": cmd_rules_update,
            "delete": cmd_rules_delete,
        }
        handler = handlers.get(args.rules_command)
        if handler is None:
            print("Usage: varcommission rules {list,show,add,update,delete}", file=sys.stderr)
            return 1
        return handler(args)

    commands = {
        "status": cmd_status,
        "calculate": cmd_calculate,
        "simulate": cmd_simulate,
        "stats": cmd_stats,
        "check-config": cmd_check_config,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    return handler(args)


if __name__ == "__main__":
    raise SystemExit(main())
