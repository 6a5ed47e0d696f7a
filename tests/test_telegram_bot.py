from datetime import datetime, timezone

from campus_energy.aggregation import building_metrics, building_window_summary, current_summary
from campus_energy.telegram_bot import format_alerts, format_building, format_current, format_daily_report

from conftest import make_reading

NOW = datetime(2025, 3, 3, 10, 5, tzinfo=timezone.utc)


def test_format_current():
    text = format_current(current_summary([make_reading(energy=120.5)], NOW))
    assert "Chemistry Research Center: <b>120.50</b> kWh" in text
    assert "Total: 120.50 kWh" in text


def test_format_current_empty():
    assert "No recent readings" in format_current(current_summary([], NOW))


def test_format_daily_report():
    metrics = {"lab-01": building_metrics([make_reading(energy=10.0), make_reading(ts="2025-03-03T11:00:00Z",
                                                                                   energy=20.0)])}
    text = format_daily_report(metrics)
    assert "<b>30.00</b> kWh (peak 20.00)" in text
    assert "Campus total: 30.00 kWh" in text
    assert "Not enough data" in format_daily_report({})


def test_format_building():
    detail = building_window_summary("lab-01", [make_reading(energy=42.0)], NOW)
    assert "Latest: <b>42.00</b> kWh at 2025-03-03T10:00:00Z" in format_building(detail)
    assert format_building({"message": "No data found for specified building"}).startswith("❌")


def test_format_alerts():
    rows = [{"building_id": "lab-01", "timestamp": datetime(2025, 3, 3, 10, 0), "alerts": ["a", "b"]}]
    assert "lab-01 (2025-03-03 10:00): a; b" in format_alerts(rows)
    assert "No recent alerts" in format_alerts([])
