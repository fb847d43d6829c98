"""Conversion between entities and plain camelCase records."""

from datetime import date, datetime
from typing import Any, Callable, Dict, Optional, Tuple

from .category import Category
from .cost import Cost, CostConfig, CostType
from .earnings import EarningsRecord, RevenueApp, VariableCost
from .gps import GPSPoint
from .maintenance import Maintenance, MaintenanceCompletion
from .schedule import ProfitSettings, WorkDay, WorkSchedule
from .session import KMTrackerSession
from .status import MaintenanceStatus, TrackerStatus
from .vehicle import Vehicle

Record = Dict[str, Any]


def _iso(value: Optional[Any]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _date(value: Any) -> Optional[date]:
    if value is None or isinstance(value, date) and not isinstance(value, datetime):
        return value
    if isinstance(value, datetime):
        return value.date()
    return date.fromisoformat(value)


def _datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return datetime.fromisoformat(value)


def _compact(d: Record) -> Record:
    """Drop None values for cleaner records."""
    return {k: v for k, v in d.items() if v is not None}


# =============================================================================
# Encoders
# =============================================================================


def category_to_dict(category: Category) -> Record:
    return _compact(
        {
            "id": category.id,
            "name": category.name,
            "active": category.active,
            "createdAt": _iso(category.created_at),
        }
    )


def vehicle_to_dict(vehicle: Vehicle) -> Record:
    return _compact(
        {
            "id": vehicle.id,
            "type": vehicle.type,
            "brand": vehicle.brand,
            "model": vehicle.model,
            "year": vehicle.year,
            "plate": vehicle.plate,
            "currentKm": vehicle.current_km,
            "avgKmPerLiter": vehicle.avg_km_per_liter,
            "active": vehicle.active,
            "lastKmUpdate": _iso(vehicle.last_km_update),
            "createdAt": _iso(vehicle.created_at),
        }
    )


def cost_config_to_dict(config: CostConfig) -> Record:
    return _compact(
        {
            "id": config.id,
            "categoryId": config.category_id,
            "vehicleId": config.vehicle_id,
            "type": config.type.value,
            "value": config.value,
            "description": config.description,
            "startDate": _iso(config.start_date),
            "active": config.active,
            "installmentsTotal": config.installments_total,
            "installmentsPaid": config.installments_paid,
            "intervalKm": config.interval_km,
            "lastKm": config.last_km,
            "intervalDays": config.interval_days,
            "lastDate": _iso(config.last_date),
            "createdAt": _iso(config.created_at),
        }
    )


def cost_to_dict(cost: Cost) -> Record:
    return _compact(
        {
            "id": cost.id,
            "configId": cost.config_id,
            "categoryId": cost.category_id,
            "categoryName": cost.category_name,
            "vehicleId": cost.vehicle_id,
            "value": cost.value,
            "description": cost.description,
            "date": _iso(cost.date),
            "typeSnapshot": cost.type_snapshot.value,
            "isFixed": cost.is_fixed,
            "createdAt": _iso(cost.created_at),
        }
    )


def completion_to_dict(completion: MaintenanceCompletion) -> Record:
    return _compact(
        {
            "id": completion.id,
            "date": _iso(completion.date),
            "km": completion.km,
            "costId": completion.cost_id,
            "notes": completion.notes,
            "createdAt": _iso(completion.created_at),
        }
    )


def maintenance_to_dict(maintenance: Maintenance) -> Record:
    return _compact(
        {
            "id": maintenance.id,
            "vehicleId": maintenance.vehicle_id,
            "name": maintenance.name,
            "description": maintenance.description,
            "intervalKm": maintenance.interval_km,
            "intervalDays": maintenance.interval_days,
            "lastKm": maintenance.last_km,
            "lastDate": _iso(maintenance.last_date),
            "nextKm": maintenance.next_km,
            "nextDate": _iso(maintenance.next_date),
            "estimatedCost": maintenance.estimated_cost,
            "active": maintenance.active,
            "status": maintenance.status.label,
            "completionHistory": [completion_to_dict(c) for c in maintenance.history],
            "createdAt": _iso(maintenance.created_at),
        }
    )


def point_to_dict(point: GPSPoint) -> Record:
    return _compact(
        {
            "latitude": point.latitude,
            "longitude": point.longitude,
            "timestamp": _iso(point.timestamp),
            "accuracy": point.accuracy,
            "speed": point.speed,
        }
    )


def session_to_dict(session: KMTrackerSession) -> Record:
    return _compact(
        {
            "id": session.id,
            "vehicleId": session.vehicle_id,
            "startTime": _iso(session.start_time),
            "endTime": _iso(session.end_time),
            "status": session.status.value,
            "totalDistanceKm": session.total_distance_km,
            "gpsPoints": [point_to_dict(p) for p in session.points],
            "lastPoint": point_to_dict(session.last_point) if session.last_point else None,
            "durationSeconds": session.duration,
            "maxSpeed": session.max_speed,
            "avgSpeed": session.avg_speed,
            "earningsRecordId": session.earnings_record_id,
            "autoSaved": session.auto_saved,
            "createdAt": _iso(session.created_at),
        }
    )


def app_to_dict(app: RevenueApp) -> Record:
    return _compact(
        {
            "id": app.id,
            "name": app.name,
            "color": app.color,
            "icon": app.icon,
            "isActive": app.active,
            "createdAt": _iso(app.created_at),
        }
    )


def variable_cost_to_dict(cost: VariableCost) -> Record:
    return _compact(
        {
            "id": cost.id,
            "type": cost.type,
            "value": cost.value,
            "liters": cost.liters,
            "description": cost.description,
        }
    )


def earnings_to_dict(record: EarningsRecord) -> Record:
    return _compact(
        {
            "id": record.id,
            "date": _iso(record.date),
            "appId": record.app_id,
            "appName": record.app_name,
            "grossEarnings": record.gross_earnings,
            "variableCosts": [variable_cost_to_dict(c) for c in record.variable_costs],
            "totalVariableCosts": record.total_variable_costs,
            "netEarnings": record.net_earnings,
            "hoursWorked": record.hours_worked,
            "kmDriven": record.km_driven,
            "vehicleId": record.vehicle_id,
            "sessionId": record.session_id,
            "createdAt": _iso(record.created_at),
        }
    )


def schedule_to_dict(schedule: WorkSchedule) -> Record:
    return {
        "workDays": [
            {"day": d.day, "enabled": d.enabled, "hours": d.hours}
            for d in schedule.work_days
        ],
        "summary": schedule.summary,
    }


def profit_settings_to_dict(settings: ProfitSettings) -> Record:
    return {
        "isEnabled": settings.enabled,
        "profitPercentage": settings.profit_percentage,
    }


# =============================================================================
# Decoders
# =============================================================================


def category_from_dict(d: Record) -> Category:
    return Category(
        d["id"], d["name"], d.get("active", True), _datetime(d.get("createdAt"))
    )


def vehicle_from_dict(d: Record) -> Vehicle:
    return Vehicle(
        d["id"],
        d["type"],
        d["brand"],
        d["model"],
        d["year"],
        d.get("plate", ""),
        d.get("currentKm", 0),
        d.get("avgKmPerLiter"),
        d.get("active", True),
        _datetime(d.get("lastKmUpdate")),
        _datetime(d.get("createdAt")),
    )


def cost_config_from_dict(d: Record) -> CostConfig:
    return CostConfig(
        d["id"],
        d["categoryId"],
        CostType(d["type"]),
        d["value"],
        _date(d["startDate"]),
        vehicle_id=d.get("vehicleId"),
        description=d.get("description"),
        active=d.get("active", True),
        installments_total=d.get("installmentsTotal"),
        installments_paid=d.get("installmentsPaid"),
        interval_km=d.get("intervalKm"),
        last_km=d.get("lastKm"),
        interval_days=d.get("intervalDays"),
        last_date=_date(d.get("lastDate")),
        created_at=_datetime(d.get("createdAt")),
    )


def cost_from_dict(d: Record) -> Cost:
    return Cost(
        d["id"],
        d["categoryId"],
        d.get("categoryName", ""),
        d["value"],
        _date(d["date"]),
        type_snapshot=CostType(d.get("typeSnapshot", "unique")),
        is_fixed=d.get("isFixed", False),
        vehicle_id=d.get("vehicleId"),
        config_id=d.get("configId"),
        description=d.get("description"),
        created_at=_datetime(d.get("createdAt")),
    )


def completion_from_dict(d: Record) -> MaintenanceCompletion:
    return MaintenanceCompletion(
        d["id"],
        _date(d["date"]),
        d["km"],
        d.get("costId"),
        d.get("notes"),
        _datetime(d.get("createdAt")),
    )


def maintenance_from_dict(d: Record) -> Maintenance:
    return Maintenance(
        d["id"],
        d["vehicleId"],
        d["name"],
        interval_km=d.get("intervalKm"),
        interval_days=d.get("intervalDays"),
        last_km=d.get("lastKm"),
        last_date=_date(d.get("lastDate")),
        next_km=d.get("nextKm"),
        next_date=_date(d.get("nextDate")),
        description=d.get("description"),
        estimated_cost=d.get("estimatedCost"),
        active=d.get("active", True),
        status=MaintenanceStatus[d.get("status", "ok").upper()],
        history=[completion_from_dict(c) for c in d.get("completionHistory") or []],
        created_at=_datetime(d.get("createdAt")),
    )


def point_from_dict(d: Record) -> GPSPoint:
    return GPSPoint(
        d["latitude"],
        d["longitude"],
        _datetime(d["timestamp"]),
        d.get("accuracy"),
        d.get("speed"),
    )


def session_from_dict(d: Record) -> KMTrackerSession:
    last_point = d.get("lastPoint")
    return KMTrackerSession(
        d["id"],
        _datetime(d["startTime"]),
        vehicle_id=d.get("vehicleId"),
        status=TrackerStatus(d.get("status", "completed")),
        end_time=_datetime(d.get("endTime")),
        total_distance_km=d.get("totalDistanceKm", 0),
        points=[point_from_dict(p) for p in d.get("gpsPoints") or []],
        last_point=point_from_dict(last_point) if last_point else None,
        duration=d.get("durationSeconds", 0),
        max_speed=d.get("maxSpeed"),
        avg_speed=d.get("avgSpeed"),
        earnings_record_id=d.get("earningsRecordId"),
        auto_saved=d.get("autoSaved", False),
        created_at=_datetime(d.get("createdAt")),
    )


def app_from_dict(d: Record) -> RevenueApp:
    return RevenueApp(
        d["id"],
        d["name"],
        d.get("color", "#6B7280"),
        d.get("icon", ""),
        d.get("isActive", True),
        _datetime(d.get("createdAt")),
    )


def variable_cost_from_dict(d: Record) -> VariableCost:
    return VariableCost(
        d["id"], d["type"], d["value"], d.get("liters"), d.get("description")
    )


def earnings_from_dict(d: Record) -> EarningsRecord:
    return EarningsRecord(
        d["id"],
        _date(d["date"]),
        d["appId"],
        d.get("appName", ""),
        d["grossEarnings"],
        variable_costs=[variable_cost_from_dict(c) for c in d.get("variableCosts") or []],
        hours_worked=d.get("hoursWorked"),
        km_driven=d.get("kmDriven"),
        vehicle_id=d.get("vehicleId"),
        session_id=d.get("sessionId"),
        created_at=_datetime(d.get("createdAt")),
    )


def schedule_from_dict(d: Optional[Record]) -> WorkSchedule:
    if not d or not d.get("workDays"):
        return WorkSchedule()
    return WorkSchedule(
        [
            WorkDay(w["day"], w.get("enabled", False), w.get("hours", 4))
            for w in d["workDays"]
        ]
    )


def profit_settings_from_dict(d: Optional[Record]) -> ProfitSettings:
    if not d:
        return ProfitSettings()
    return ProfitSettings(d.get("isEnabled", False), d.get("profitPercentage", 0))


# Table name -> (encoder, decoder)
KINDS: Dict[str, Tuple[Callable[[Any], Record], Callable[[Record], Any]]] = {
    "categories": (category_to_dict, category_from_dict),
    "vehicles": (vehicle_to_dict, vehicle_from_dict),
    "cost_configs": (cost_config_to_dict, cost_config_from_dict),
    "costs": (cost_to_dict, cost_from_dict),
    "maintenances": (maintenance_to_dict, maintenance_from_dict),
    "sessions": (session_to_dict, session_from_dict),
    "apps": (app_to_dict, app_from_dict),
    "earnings": (earnings_to_dict, earnings_from_dict),
}

SETTINGS = {
    "workSchedule": (schedule_to_dict, schedule_from_dict),
    "profitSettings": (profit_settings_to_dict, profit_settings_from_dict),
}


def encode(kind: str, entity: Any) -> Record:
    return KINDS[kind][0](entity)


def decode(kind: str, record: Record) -> Any:
    return KINDS[kind][1](record)
