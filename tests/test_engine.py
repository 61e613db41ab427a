"""Tests for the shared engine state."""

from localbus_api.services.engine import TransitEngine, get_transit_engine, reset_transit_engine

from .fixtures.provider_fixture import FETCHED_AT, STOP_42, build_reference, raw_vehicle


class TestTransitEngine:
    def test_starts_empty(self) -> None:
        engine = TransitEngine()

        assert engine.reference.is_empty
        assert engine.containment == frozenset()
        assert engine.latest_vehicles is None
        assert engine.status()["latest_fetched_at"] is None

    def test_swaps_replace_values(self) -> None:
        engine = TransitEngine()
        cache = build_reference()
        engine.swap_reference(cache)
        engine.swap_containment(frozenset({(501, 42)}))

        assert engine.reference is cache
        assert engine.status()["containment_pairs"] == 1

    def test_record_vehicles_is_a_snapshot(self) -> None:
        engine = TransitEngine()
        payload = [raw_vehicle(STOP_42)]
        engine.record_vehicles(FETCHED_AT, payload)
        payload.append(raw_vehicle(STOP_42, vehicle_id=502))

        assert engine.latest_vehicles is not None
        assert len(engine.latest_vehicles.vehicles) == 1
        assert engine.status()["latest_vehicles"] == 1

    def test_singleton(self) -> None:
        first = get_transit_engine()
        assert get_transit_engine() is first
        reset_transit_engine()
        assert get_transit_engine() is not first
