#!/usr/bin/env python3
"""
Command-line front end for the gig-ledger.

Commands:
  status          - Show maintenance that is overdue, urgent or upcoming
  vehicles        - List vehicles
  add-vehicle     - Register a vehicle
  add-maintenance - Add a maintenance item to a vehicle
  complete        - Mark a maintenance item as done
  update-km       - Update a vehicle's odometer
  costs           - List a month's costs
  add-cost        - Add a cost (unique or recurring)
  sweep           - Generate due fixed monthly costs
  earn            - Register earnings for a day
  target          - Show the daily target and progress
  account         - Split today's earnings into cost recovery and profit
  track           - Replay a GPS track file through a tracking session
  export / import - Write or restore a JSON backup
"""

import argparse
import logging
import sys
from datetime import date
from pathlib import Path
from typing import List, Optional

from tabulate import tabulate

from gigledger import (
    CostType,
    Ledger,
    LedgerError,
    Maintenance,
    MaintenanceStatus,
    ReplayProvider,
    Vehicle,
    load_settings,
    variable_cost,
)
from gigledger.schedule import DAYS_OF_WEEK

DEFAULT_DATA_FILE = "ledger.yaml"

logger = logging.getLogger("ledger")

# =============================================================================
# Formatting helpers
# =============================================================================


def format_km(km: Optional[float]) -> str:
    """Format an odometer reading or distance for display."""
    return f"{km:,.0f}" if km is not None else "-"


def format_money(value: Optional[float]) -> str:
    return f"{value:,.2f}" if value is not None else "-"


def format_days(days: Optional[int]) -> str:
    """Format remaining days (e.g., '3mo 15d' or '-2mo 5d')."""
    if days is None:
        return "-"
    sign = "-" if days < 0 else ""
    days = abs(days)
    months, remaining = divmod(days, 30)
    if months > 0:
        return f"{sign}{months}mo {remaining}d"
    return f"{sign}{days}d"


def format_percent(value: float) -> str:
    return f"{value:.0f}%"


def truncate(text: Optional[str], max_len: int = 30) -> str:
    """Truncate text with ellipsis if too long."""
    if text is None:
        return "-"
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def parse_month(text: Optional[str]) -> date:
    """YYYY-MM (or a full date) to the first of that month; default this month."""
    if not text:
        return date.today().replace(day=1)
    if len(text) == 7:
        text += "-01"
    return date.fromisoformat(text).replace(day=1)


def make_maintenance_table(
    items: List[Maintenance], current_km: float, today: date
) -> List[List[str]]:
    """Convert maintenance items to table rows."""
    rows = []
    for m in items:
        last_done = "-"
        if m.last_date or m.last_km is not None:
            parts = []
            if m.last_date:
                parts.append(m.last_date.isoformat())
            if m.last_km is not None:
                parts.append(format_km(m.last_km))
            last_done = " @ ".join(parts)

        rows.append(
            [
                m.name,
                last_done,
                format_km(m.next_km),
                m.next_date.isoformat() if m.next_date else "-",
                format_km(m.km_remaining(current_km)),
                format_days(m.days_remaining(today)),
            ]
        )
    return rows


def make_vehicle_table(vehicles: List[Vehicle]) -> List[List[str]]:
    return [
        [v.id[:8], v.name, v.type, v.plate or "-", format_km(v.current_km), "yes" if v.active else "no"]
        for v in vehicles
    ]


def make_cost_table(costs) -> List[List[str]]:
    return [
        [
            c.date.isoformat(),
            c.category_name,
            c.type_snapshot.value,
            format_money(c.value),
            truncate(c.description),
        ]
        for c in costs
    ]


# =============================================================================
# Lookups
# =============================================================================


def find_vehicle(ledger: Ledger, ref: Optional[str]) -> Vehicle:
    """Resolve a vehicle by id, id prefix or plate; default to the active one."""
    if ref is None:
        vehicle = ledger.vehicles.active_vehicle()
        if vehicle is None:
            raise LookupError("No active vehicle; add one with add-vehicle")
        return vehicle
    for vehicle in ledger.vehicles.vehicles():
        if vehicle.id == ref or vehicle.id.startswith(ref) or vehicle.plate.lower() == ref.lower():
            return vehicle
    raise LookupError(f"Unknown vehicle '{ref}'")


def find_maintenance(ledger: Ledger, vehicle: Vehicle, ref: str) -> Maintenance:
    for m in ledger.maintenance.for_vehicle(vehicle.id):
        if m.id == ref or m.name.lower() == ref.lower():
            return m
    raise LookupError(f"Unknown maintenance '{ref}' for {vehicle.name}")


def find_app(ledger: Ledger, name: str):
    for app in ledger.catalog.apps():
        if app.id == name or app.name.lower() == name.lower():
            return app
    raise LookupError(f"Unknown app '{name}'")


# =============================================================================
# Vehicle and maintenance commands
# =============================================================================


def cmd_vehicles(ledger: Ledger, args) -> int:
    """List vehicles."""
    vehicles = ledger.vehicles.vehicles()
    if not vehicles:
        print("No vehicles registered.")
        return 0
    headers = ["Id", "Vehicle", "Type", "Plate", "Km", "Active"]
    print(tabulate(make_vehicle_table(vehicles), headers=headers, tablefmt="simple"))
    return 0


def cmd_add_vehicle(ledger: Ledger, args) -> int:
    vehicle = ledger.vehicles.add_vehicle(
        args.type,
        args.brand,
        args.model,
        args.year,
        plate=args.plate or "",
        current_km=args.km,
        avg_km_per_liter=args.km_per_liter,
    )
    print(f"Added {vehicle.name} ({vehicle.id[:8]}) at {format_km(vehicle.current_km)} km")
    return 0


def cmd_status(ledger: Ledger, args) -> int:
    """Show what maintenance is overdue, urgent or upcoming."""
    vehicle = find_vehicle(ledger, args.vehicle)
    today = date.today()
    items = ledger.maintenance.for_vehicle(vehicle.id)

    print(f"Vehicle: {vehicle.name}")
    print(f"Current km: {format_km(vehicle.current_km)}")
    print(f"Maintenance items: {len(items)}")
    print()

    headers = ["Item", "Last Done", "Next (km)", "Next (date)", "Remaining (km)", "Remaining (time)"]
    for status in MaintenanceStatus:
        group = [m for m in items if m.status is status]
        if not group:
            continue
        print(f"{status.label.upper()}:")
        print(
            tabulate(
                make_maintenance_table(group, vehicle.current_km, today),
                headers=headers,
                tablefmt="simple",
            )
        )
        print()
    return 0


def cmd_add_maintenance(ledger: Ledger, args) -> int:
    vehicle = find_vehicle(ledger, args.vehicle)
    maintenance = ledger.maintenance.add_maintenance(
        vehicle.id,
        args.name,
        interval_km=args.interval_km,
        interval_days=args.interval_days,
        last_km=args.last_km,
        last_date=date.fromisoformat(args.last_date) if args.last_date else None,
        description=args.description,
        estimated_cost=args.cost,
    )
    print(
        f"Added '{maintenance.name}' to {vehicle.name}: "
        f"next at {format_km(maintenance.next_km)} km / "
        f"{maintenance.next_date or '-'} ({maintenance.status.label})"
    )
    return 0


def cmd_complete(ledger: Ledger, args) -> int:
    vehicle = find_vehicle(ledger, args.vehicle)
    maintenance = find_maintenance(ledger, vehicle, args.name)
    km = args.km if args.km is not None else vehicle.current_km
    done = ledger.maintenance.complete_maintenance(maintenance.id, km, notes=args.notes)
    print(f"Completed '{done.name}' at {format_km(km)} km")
    print(f"Next: {format_km(done.next_km)} km / {done.next_date or '-'} ({done.status.label})")
    return 0


def cmd_update_km(ledger: Ledger, args) -> int:
    """Update a vehicle's odometer."""
    vehicle = find_vehicle(ledger, args.vehicle)
    ledger.vehicles.check_km(vehicle, args.km)
    print(f"Vehicle: {vehicle.name}")
    print(f"Current km: {format_km(vehicle.current_km)}")
    print(f"New km:     {format_km(args.km)}")
    print()

    if args.dry_run:
        print("(dry run - no changes made)")
        return 0

    costs_before = len(ledger.state.costs)
    ledger.vehicles.update_km(vehicle.id, args.km)
    generated = len(ledger.state.costs) - costs_before
    print("Odometer updated.")
    if generated:
        print(f"{generated} km-based cost(s) generated.")
    for m in ledger.maintenance.overdue(vehicle.id):
        print(f"  OVERDUE: {m.name}")
    return 0


# =============================================================================
# Cost commands
# =============================================================================


def cmd_costs(ledger: Ledger, args) -> int:
    """List a month's costs with the month total."""
    month = parse_month(args.month)
    costs = ledger.recurring.costs_for_month(month)
    print(f"Month: {month:%Y-%m}")
    print()
    if costs:
        headers = ["Date", "Category", "Type", "Value", "Description"]
        print(tabulate(make_cost_table(costs), headers=headers, tablefmt="simple"))
        print()
    else:
        print("No costs registered.")
    print(f"Ledger total:    {format_money(sum(c.value for c in costs))}")
    print(f"Month total:     {format_money(ledger.recurring.monthly_cost_total(month))}")
    return 0


def cmd_add_cost(ledger: Ledger, args) -> int:
    category = ledger.catalog.find_category(args.category)
    if category is None:
        names = ", ".join(c.name for c in ledger.catalog.categories())
        print(f"Error: Unknown category '{args.category}'")
        print(f"\nAvailable categories: {names}")
        return 1
    vehicle_id = None
    if args.vehicle or args.type == CostType.KM_BASED.value:
        vehicle_id = find_vehicle(ledger, args.vehicle).id

    cost = ledger.recurring.add_cost(
        category.id,
        args.value,
        args.description,
        date.fromisoformat(args.date) if args.date else date.today(),
        CostType(args.type),
        vehicle_id=vehicle_id,
        installments=args.installments,
        interval_km=args.interval_km,
        interval_days=args.interval_days,
    )
    print(f"Added {cost.type_snapshot.value} cost {format_money(cost.value)} in {cost.category_name}")
    return 0


def cmd_sweep(ledger: Ledger, args) -> int:
    generated = ledger.run_daily()
    if not generated:
        print("Nothing to generate.")
        return 0
    headers = ["Date", "Category", "Type", "Value", "Description"]
    print(tabulate(make_cost_table(generated), headers=headers, tablefmt="simple"))
    return 0


# =============================================================================
# Earnings and target commands
# =============================================================================


def parse_variable_costs(specs: Optional[List[str]]):
    """TYPE:VALUE pairs, e.g. fuel:50 toll:7.5."""
    costs = []
    for spec in specs or []:
        kind, _, value = spec.partition(":")
        costs.append(variable_cost(kind.strip().lower(), float(value)))
    return costs


def cmd_earn(ledger: Ledger, args) -> int:
    app = find_app(ledger, args.app)
    vehicle_id = find_vehicle(ledger, args.vehicle).id if args.vehicle else None
    record = ledger.earnings.add_record(
        date.fromisoformat(args.date) if args.date else date.today(),
        app.id,
        args.gross,
        parse_variable_costs(args.cost),
        hours_worked=args.hours,
        km_driven=args.km,
        vehicle_id=vehicle_id,
    )
    progress = ledger.targets.record_progress(record)
    print(
        f"Registered {format_money(record.gross_earnings)} gross, "
        f"{format_money(record.net_earnings)} net on {app.name}"
    )
    print(f"Day progress: {format_percent(progress.percentage)}")
    return 0


def cmd_target(ledger: Ledger, args) -> int:
    day = date.fromisoformat(args.date) if args.date else date.today()
    schedule = ledger.state.work_schedule
    summary = ledger.targets.daily_summary(day)

    print(f"Date: {day} ({DAYS_OF_WEEK[day.weekday()]})")
    print(f"Monthly costs:  {format_money(ledger.recurring.monthly_cost_total(day))}")
    print(f"Hours / month:  {schedule.hours_per_month}")
    print(f"Cost per hour:  {format_money(ledger.targets.cost_per_hour(day))}")
    print(f"Daily target:   {format_money(ledger.targets.daily_target(day))}")
    print(f"Net earned:     {format_money(summary.total_net_earnings)}")
    print(
        f"Progress:       {format_percent(summary.target_progress.percentage)}"
        + (" (achieved)" if summary.target_progress.is_achieved else "")
    )
    if summary.earnings_by_app:
        print()
        rows = [[t.app_name, format_money(t.total)] for t in summary.earnings_by_app.values()]
        print(tabulate(rows, headers=["App", "Gross"], tablefmt="simple"))
    return 0


def cmd_account(ledger: Ledger, args) -> int:
    account = ledger.targets.daily_account()
    rows = [
        ["Cost", format_money(account.cost), format_money(account.cost_target), "yes" if account.is_cost_met else "no"],
        ["Profit", format_money(account.profit), format_money(account.profit_target), "yes" if account.is_profit_met else "no"],
    ]
    print(tabulate(rows, headers=["", "Earned", "Target", "Met"], tablefmt="simple"))
    return 0


def cmd_report(ledger: Ledger, args) -> int:
    """Month totals, forecast and best days."""
    report = ledger.targets.monthly_report(parse_month(args.month))
    print(f"Month: {report.month:%Y-%m}")
    print()
    rows = [
        ["Gross", format_money(report.total_gross)],
        ["Variable costs", format_money(report.total_variable_costs)],
        ["Fixed costs", format_money(report.total_fixed_costs)],
        ["Profit", format_money(report.total_profit)],
        ["Km driven", format_km(report.total_km)],
        ["Profit per km", format_money(report.profit_per_km)],
        ["Forecast", format_money(report.forecast)],
        ["Monthly target", format_money(report.monthly_target)],
        ["Goal progress", format_percent(report.goal_progress.percentage)],
    ]
    print(tabulate(rows, tablefmt="plain"))
    print()
    if report.best_days:
        print("Best days:")
        for day, value in report.best_days:
            print(f"  {day} ({DAYS_OF_WEEK[day.weekday()]}): {format_money(value)}")
    else:
        print("No earnings this month.")
    return 0


# =============================================================================
# Tracking and backup commands
# =============================================================================


def cmd_track(ledger: Ledger, args) -> int:
    """Replay a recorded GPS track through a tracking session."""
    provider = ReplayProvider.from_file(args.track_file)
    vehicle_id = find_vehicle(ledger, args.vehicle).id if args.vehicle else None
    ledger.tracker.start(vehicle_id)
    ledger.tracker.attach(provider)
    sent = provider.replay()
    session = ledger.tracker.stop(auto_save=not args.no_save)

    print(f"Samples: {sent} sent, {len(session.points)} accepted")
    print(f"Distance: {session.total_distance_km:.2f} km")
    if session.max_speed is not None:
        print(f"Max speed: {session.max_speed:.1f} km/h")
    if session.auto_saved:
        print("Odometer and earnings updated.")
    return 0


def cmd_export(ledger: Ledger, args) -> int:
    snapshot = ledger.save_backup(args.backup_file)
    counts = ", ".join(f"{k}={len(v)}" for k, v in snapshot["data"].items() if isinstance(v, list))
    print(f"Backup written to {args.backup_file} ({counts})")
    return 0


def cmd_import(ledger: Ledger, args) -> int:
    if not args.yes:
        print(f"This replaces ALL data with {args.backup_file}. Re-run with --yes to confirm.")
        return 1
    ledger.load_backup(args.backup_file)
    print("Backup restored.")
    return 0


COMMANDS = {
    "vehicles": cmd_vehicles,
    "add-vehicle": cmd_add_vehicle,
    "status": cmd_status,
    "add-maintenance": cmd_add_maintenance,
    "complete": cmd_complete,
    "update-km": cmd_update_km,
    "costs": cmd_costs,
    "add-cost": cmd_add_cost,
    "sweep": cmd_sweep,
    "earn": cmd_earn,
    "target": cmd_target,
    "account": cmd_account,
    "report": cmd_report,
    "track": cmd_track,
    "export": cmd_export,
    "import": cmd_import,
}


# =============================================================================
# Main
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Earnings and cost ledger for app drivers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s add-vehicle car Honda Civic 2020 --plate ABC1D23 --km 45000
  %(prog)s add-maintenance "Oil change" --interval-km 5000 --interval-days 180
  %(prog)s update-km 45800
  %(prog)s add-cost Insurance 150 --type fixed_monthly
  %(prog)s add-cost Maintenance 80 --type km_based --interval-km 1000
  %(prog)s earn Uber 250 --hours 8 --km 120 --cost fuel:60
  %(prog)s target
  %(prog)s track trips/monday.yaml
""",
    )
    parser.add_argument("--data", type=Path, help="Ledger data file (YAML)")
    parser.add_argument("--config", type=Path, help="Settings file (default: gigledger.yaml)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("vehicles", help="List vehicles")

    p = subparsers.add_parser("add-vehicle", help="Register a vehicle")
    p.add_argument("type", choices=["moto", "car"])
    p.add_argument("brand")
    p.add_argument("model")
    p.add_argument("year", type=int)
    p.add_argument("--plate", type=str)
    p.add_argument("--km", type=float, default=0, help="Current odometer reading")
    p.add_argument("--km-per-liter", type=float)

    p = subparsers.add_parser("status", help="Show maintenance status")
    p.add_argument("--vehicle", type=str, help="Vehicle id or plate (default: active)")

    p = subparsers.add_parser("add-maintenance", help="Add a maintenance item")
    p.add_argument("name")
    p.add_argument("--vehicle", type=str)
    p.add_argument("--interval-km", type=float)
    p.add_argument("--interval-days", type=int)
    p.add_argument("--last-km", type=float, help="Odometer at last service (default: current)")
    p.add_argument("--last-date", type=str, help="Date of last service YYYY-MM-DD (default: today)")
    p.add_argument("--description", type=str)
    p.add_argument("--cost", type=float, help="Estimated cost")

    p = subparsers.add_parser("complete", help="Mark maintenance as done")
    p.add_argument("name", help="Maintenance name or id")
    p.add_argument("--vehicle", type=str)
    p.add_argument("--km", type=float, help="Odometer at service (default: current)")
    p.add_argument("--notes", type=str)

    p = subparsers.add_parser("update-km", help="Update the odometer")
    p.add_argument("km", type=float)
    p.add_argument("--vehicle", type=str)
    p.add_argument("--dry-run", action="store_true", help="Show the change without saving")

    p = subparsers.add_parser("costs", help="List a month's costs")
    p.add_argument("--month", type=str, help="YYYY-MM (default: this month)")

    p = subparsers.add_parser("add-cost", help="Add a cost")
    p.add_argument("category", help="Category name")
    p.add_argument("value", type=float)
    p.add_argument("--type", choices=[t.value for t in CostType], default=CostType.UNIQUE.value)
    p.add_argument("--description", type=str)
    p.add_argument("--date", type=str, help="YYYY-MM-DD (default: today)")
    p.add_argument("--vehicle", type=str)
    p.add_argument("--installments", type=int)
    p.add_argument("--interval-km", type=float)
    p.add_argument("--interval-days", type=int)

    subparsers.add_parser("sweep", help="Generate due fixed monthly costs")

    p = subparsers.add_parser("earn", help="Register earnings")
    p.add_argument("app", help="Revenue app name")
    p.add_argument("gross", type=float)
    p.add_argument("--date", type=str)
    p.add_argument("--hours", type=float)
    p.add_argument("--km", type=float, help="Km driven (advances the odometer)")
    p.add_argument("--vehicle", type=str)
    p.add_argument("--cost", action="append", help="Variable cost TYPE:VALUE (repeatable)")

    p = subparsers.add_parser("target", help="Show the daily target")
    p.add_argument("--date", type=str)

    subparsers.add_parser("account", help="Today's cost/profit split")

    p = subparsers.add_parser("report", help="Monthly earnings report")
    p.add_argument("--month", type=str, help="YYYY-MM (default: this month)")

    p = subparsers.add_parser("track", help="Replay a GPS track file")
    p.add_argument("track_file", type=Path)
    p.add_argument("--vehicle", type=str)
    p.add_argument("--no-save", action="store_true", help="Do not update odometer or earnings")

    p = subparsers.add_parser("export", help="Write a JSON backup")
    p.add_argument("backup_file", type=Path)

    p = subparsers.add_parser("import", help="Restore a JSON backup")
    p.add_argument("backup_file", type=Path)
    p.add_argument("--yes", action="store_true", help="Confirm replacing all data")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    settings = load_settings(args.config)
    if args.data:
        settings.data_file = str(args.data)
    elif not settings.data_file:
        settings.data_file = DEFAULT_DATA_FILE

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.log_level.upper(),
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        with Ledger.from_settings(settings) as ledger:
            return COMMANDS[args.command](ledger, args)
    except (LedgerError, LookupError, OSError, ValueError) as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main() or 0)
