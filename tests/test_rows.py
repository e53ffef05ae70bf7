"""
Unit tests for row shaping, the power storage cadence and gas deduplication.
"""

import threading
from datetime import datetime, timezone

import pytest

from p1telegram.rows import GasDeduplicator, PowerSampler, gas_row, power_row, telegram_row
from p1telegram.telegram import Gas, Measurement, ParsedTelegram, Power, PowerImport


def make_telegram(minute: int = 0, gas_minute: int = 0) -> ParsedTelegram:
    return ParsedTelegram(
        timestamp=datetime(2023, 6, 15, 10, minute, 0, tzinfo=timezone.utc),
        power=Power(
            import_=PowerImport(
                t1=Measurement(1234.5, "kWh"),
                t2=Measurement(2345.25, "kWh"),
                active=Measurement(0.345, "kW"),
            )
        ),
        gas=Gas(
            timestamp=datetime(2023, 6, 15, 10, gas_minute, 0, tzinfo=timezone.utc),
            value=1234.567,
            unit="m3",
        ),
    )


class TestRows:
    def test_power_row(self) -> None:
        assert power_row(make_telegram()) == {
            "power_timestamp": "2023-06-15T10:00:00+00:00",
            "power_t1": 1234.5,
            "power_t2": 2345.25,
            "power_total": 3579.75,
            "power_active": 0.345,
        }

    def test_gas_row(self) -> None:
        assert gas_row(make_telegram(gas_minute=55)) == {
            "gas_timestamp": "2023-06-15T10:55:00+00:00",
            "gas_value": 1234.567,
        }

    def test_telegram_row_combines_both(self) -> None:
        telegram = make_telegram()
        row = telegram_row(telegram)
        assert row == {**power_row(telegram), **gas_row(telegram)}
        assert len(row) == 7


class TestPowerSampler:
    @pytest.mark.parametrize(("minute", "accepted"), [(0, True), (5, True), (55, True), (1, False), (59, False)])
    def test_default_every_five_minutes(self, minute: int, accepted: bool) -> None:
        assert PowerSampler().accept(make_telegram(minute=minute)) is accepted

    def test_interval_of_one_accepts_all(self) -> None:
        sampler = PowerSampler(1)
        assert all(sampler.accept(make_telegram(minute=m)) for m in range(60))

    def test_interval_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            PowerSampler(0)


class TestGasDeduplicator:
    def test_same_gas_reading_passes_once(self) -> None:
        dedup = GasDeduplicator()
        assert dedup.accept(make_telegram(minute=1, gas_minute=0)) is True
        assert dedup.accept(make_telegram(minute=2, gas_minute=0)) is False
        assert dedup.accept(make_telegram(minute=6, gas_minute=5)) is True

    def test_oldest_entries_are_forgotten(self) -> None:
        dedup = GasDeduplicator(size=2)
        for gas_minute in (0, 5, 10):
            assert dedup.accept(make_telegram(gas_minute=gas_minute))
        assert dedup.accept(make_telegram(gas_minute=0)) is True
        assert dedup.accept(make_telegram(gas_minute=10)) is False

    def test_concurrent_callers_accept_once(self) -> None:
        dedup = GasDeduplicator()
        telegram = make_telegram()
        results = []
        lock = threading.Lock()

        def worker() -> None:
            accepted = dedup.accept(telegram)
            with lock:
                results.append(accepted)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 1
