"""Recurring cost engine: expands cost templates into ledger entries."""

import logging
from datetime import date, datetime
from typing import Any, Callable, List, Optional

from .calculations import add_months, first_of_month, last_of_month, month_key, same_month
from .cost import Cost, CostConfig, CostType
from .errors import InvariantError, ValidationError
from .events import KmChanged
from .ids import new_id
from .notifications import dispatch
from .state import AppState, synchronized
from .validation import require_number, require_positive

logger = logging.getLogger(__name__)

FIXED_COST_LABEL = "Fixed monthly cost"
KM_COST_LABEL = "km reached"


class RecurringCostEngine:
    """
    Turns CostConfig templates into Cost rows.

    - unique: one row, no template kept
    - fixed_monthly: first row now, then one row per month via ``sweep``
    - installments: all N rows created up front, one month apart
    - km_based: first row now, then one row per odometer threshold crossing
    - custom_days: template kept, first row now, no automatic generation
    """

    def __init__(self, state: AppState, notifier: Any, clock: Callable[[], datetime]):
        self.state = state
        self.notifier = notifier
        self.clock = clock

    # -------------------------------------------------------------------------
    # Template creation
    # -------------------------------------------------------------------------

    @synchronized
    def add_cost(
        self,
        category_id: str,
        value: float,
        description: Optional[str],
        date: date,
        cost_type: CostType = CostType.UNIQUE,
        vehicle_id: Optional[str] = None,
        installments: Optional[int] = None,
        interval_km: Optional[float] = None,
        interval_days: Optional[int] = None,
    ) -> Cost:
        """Create a cost (and its template when recurring). Returns the first row."""
        cost_type = CostType(cost_type)
        category = self.state.require("categories", category_id)
        require_number(value, "value")
        vehicle = self.state.require("vehicles", vehicle_id) if vehicle_id else None

        if cost_type is CostType.INSTALLMENTS:
            if isinstance(installments, bool) or not isinstance(installments, int) or installments < 1:
                raise ValidationError("installments must be a whole number >= 1")
        elif cost_type is CostType.KM_BASED:
            if vehicle is None:
                raise InvariantError("km_based costs require a vehicle")
            require_positive(interval_km, "interval_km")
        elif cost_type is CostType.CUSTOM_DAYS:
            require_positive(interval_days, "interval_days")

        now = self.clock()
        first = Cost(
            new_id(),
            category.id,
            category.name,
            value,
            date,
            type_snapshot=cost_type,
            is_fixed=cost_type is CostType.FIXED_MONTHLY,
            vehicle_id=vehicle_id,
            description=description,
            created_at=now,
        )
        rows = [first]
        config = None

        if cost_type is not CostType.UNIQUE:
            config = CostConfig(
                new_id(),
                category.id,
                cost_type,
                value,
                date,
                vehicle_id=vehicle_id,
                description=description,
                interval_km=interval_km,
                interval_days=interval_days,
                installments_total=installments,
                last_date=date,
                created_at=now,
            )
            first.config_id = config.id
            if cost_type is CostType.KM_BASED:
                config.last_km = vehicle.current_km
            if cost_type is CostType.INSTALLMENTS:
                config.installments_paid = 1
                rows.extend(self._installment_rows(config, category.name, installments))

        tx = self.state.begin()
        if config is not None:
            tx.insert("cost_configs", config)
        for row in rows:
            tx.insert("costs", row)
        self.state.commit(tx)

        logger.info(
            "Added %s cost %.2f in '%s' (%d ledger row(s))",
            cost_type.value,
            value,
            category.name,
            len(rows),
        )
        return first

    def _installment_rows(self, config: CostConfig, category_name: str, total: int) -> List[Cost]:
        """Rows 2..N, each one calendar month after the start date."""
        rows = []
        for i in range(1, total):
            rows.append(
                Cost(
                    new_id(),
                    config.category_id,
                    category_name,
                    config.value,
                    add_months(config.start_date, i),
                    type_snapshot=CostType.INSTALLMENTS,
                    vehicle_id=config.vehicle_id,
                    config_id=config.id,
                    description=f"{config.description or ''} ({i + 1}/{total})".strip(),
                    created_at=config.created_at,
                )
            )
        return rows

    # -------------------------------------------------------------------------
    # Generation
    # -------------------------------------------------------------------------

    def has_cost_in_month(self, config_id: str, month: date) -> bool:
        return any(
            c.config_id == config_id and same_month(c.date, month) for c in self.state.costs
        )

    @synchronized
    def sweep(self, today: Optional[date] = None) -> List[Cost]:
        """
        Emit this month's row for every active fixed_monthly template.

        Idempotent within a month: a template that already has a row in the
        current month is skipped.
        """
        today = today or self.clock().date()
        generated = []
        tx = self.state.begin()
        for config in self.state.cost_configs:
            if not config.active or config.type is not CostType.FIXED_MONTHLY:
                continue
            if month_key(config.start_date) > month_key(today):
                continue
            if self.has_cost_in_month(config.id, today):
                continue

            category = self.state.get("categories", config.category_id)
            cost = Cost(
                new_id(),
                config.category_id,
                category.name if category else FIXED_COST_LABEL,
                config.value,
                first_of_month(today),
                type_snapshot=CostType.FIXED_MONTHLY,
                is_fixed=True,
                vehicle_id=config.vehicle_id,
                config_id=config.id,
                description=config.description or FIXED_COST_LABEL,
                created_at=self.clock(),
            )
            tx.insert("costs", cost)
            tx.update("cost_configs", config.id, last_date=today)
            tx.after_commit(lambda cost=cost: dispatch(self.notifier, "cost_generated", cost))
            generated.append(cost)

        self.state.commit(tx)
        if generated:
            logger.info("Sweep generated %d fixed monthly cost(s)", len(generated))
        return generated

    def on_km_changed(self, event: KmChanged) -> None:
        """Stage a row for every km_based template whose threshold was crossed."""
        tx = event.tx
        for config in self.state.cost_configs:
            if (
                config.vehicle_id != event.vehicle.id
                or not config.active
                or config.type is not CostType.KM_BASED
                or not config.interval_km
            ):
                continue
            current = tx.current("cost_configs", config.id)
            if event.new_km < current.next_trigger_km:
                continue

            category = self.state.get("categories", config.category_id)
            cost = Cost(
                new_id(),
                config.category_id,
                category.name if category else "Maintenance",
                config.value,
                event.today,
                type_snapshot=CostType.KM_BASED,
                vehicle_id=event.vehicle.id,
                config_id=config.id,
                description=f"Automatic maintenance: {config.description or KM_COST_LABEL}",
                created_at=self.clock(),
            )
            tx.insert("costs", cost)
            # Reset from the triggering reading, not the threshold
            tx.update("cost_configs", config.id, last_km=event.new_km)
            tx.after_commit(lambda cost=cost: dispatch(self.notifier, "cost_generated", cost))
            logger.info(
                "Odometer %.0f crossed %.0f: generating '%s'",
                event.new_km,
                current.next_trigger_km,
                cost.description,
            )

    # -------------------------------------------------------------------------
    # Templates and ledger
    # -------------------------------------------------------------------------

    def configs(self, active_only: bool = True) -> List[CostConfig]:
        return [c for c in self.state.cost_configs if c.active or not active_only]

    @synchronized
    def deactivate_config(self, config_id: str) -> CostConfig:
        """Stop a template. Rows already generated stay in the ledger."""
        self.state.require("cost_configs", config_id)
        tx = self.state.begin()
        config = tx.update("cost_configs", config_id, active=False)
        self.state.commit(tx)
        return config

    @synchronized
    def delete_cost(self, cost_id: str) -> None:
        tx = self.state.begin()
        tx.delete("costs", cost_id)
        self.state.commit(tx)

    def costs_for_month(self, month: date) -> List[Cost]:
        return sorted(
            (c for c in self.state.costs if same_month(c.date, month)),
            key=lambda c: c.date,
        )

    def monthly_cost_total(self, month: Optional[date] = None) -> float:
        """
        Ledger total for the month plus projected fixed_monthly templates
        that have not generated their row for that month yet.
        """
        month = month or self.clock().date()
        total = sum(c.value for c in self.costs_for_month(month))
        month_end = last_of_month(month)
        for config in self.state.cost_configs:
            if not config.active or config.type is not CostType.FIXED_MONTHLY:
                continue
            if config.start_date > month_end:
                continue
            if not self.has_cost_in_month(config.id, month):
                total += config.value
        return total
