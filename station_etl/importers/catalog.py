"""Level 1 importers for reference catalogs: vehicle types and routes."""

from typing import Any, Dict

from .base import EntityImporter
from ..models.migration import EntityType
from ..models.record import ImportUnit
from ..services.normalizers import as_text, parse_int


class VehicleTypeImporter(EntityImporter):
    entity_type = EntityType.VEHICLE_TYPES
    label = "Vehicle Types"
    progress_every = 50
    field_limits = {"name": 100, "code": 50, "source": 50}

    def transform(self, unit: ImportUnit) -> Dict[str, Any]:
        record_id = unit.record_id
        return {
            "name": as_text(unit.get("name")) or f"Type_{record_id}",
            "code": as_text(unit.get("code")) or record_id[:20],
            "description": as_text(unit.get("description")),
            "seat_capacity": parse_int(unit.get("seat_capacity")),
        }


class RouteImporter(EntityImporter):
    """Fixed routes, from the app table and the bulk route catalog."""

    entity_type = EntityType.ROUTES
    label = "Routes"
    progress_every = 100
    field_limits = {
        "route_code": 50,
        "departure_province": 100,
        "departure_station": 255,
        "departure_station_ref": 20,
        "arrival_province": 100,
        "arrival_station": 255,
        "arrival_station_ref": 20,
        "route_type": 50,
        "decision_number": 100,
        "decision_date": 20,
        "issuing_authority": 255,
        "operation_status": 50,
        "source": 50,
    }

    def transform(self, unit: ImportUnit) -> Dict[str, Any]:
        return {
            "route_code": as_text(unit.get("route_code")) or unit.record_id,
            "departure_province": as_text(unit.get("departure_province")),
            "departure_station": as_text(unit.get("departure_station", "boarding_point")),
            "departure_station_ref": as_text(unit.get("departure_station_ref")),
            "arrival_province": as_text(unit.get("arrival_province")),
            "arrival_station": as_text(unit.get("arrival_station")),
            "arrival_station_ref": as_text(unit.get("arrival_station_ref")),
            "distance_km": parse_int(unit.get("distance_km")),
            "itinerary": as_text(unit.get("itinerary", "journey_description")),
            "route_type": as_text(unit.get("route_type")),
            "total_trips_per_month": parse_int(unit.get("total_trips_per_month")),
            "trips_operated": parse_int(unit.get("trips_operated")),
            "remaining_capacity": parse_int(unit.get("remaining_capacity")),
            "min_interval_minutes": parse_int(unit.get("min_interval_minutes")),
            "decision_number": as_text(unit.get("decision_number")),
            "decision_date": as_text(unit.get("decision_date")),
            "issuing_authority": as_text(unit.get("issuing_authority")),
            "operation_status": as_text(unit.get("operation_status")),
        }
