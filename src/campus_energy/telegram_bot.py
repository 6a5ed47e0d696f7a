import logging
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Dict, List

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.ext import ApplicationBuilder, CallbackQueryHandler, CommandHandler, ContextTypes

from campus_energy import config
from campus_energy.aggregation import WINDOW_SIZE, building_metrics, building_window_summary, current_summary
from campus_energy.influx_store import CURRENT_SCAN_LIMIT, ReadingStore
from campus_energy.models import Reading
from campus_energy.postgres_store import AlertHistory

log = logging.getLogger(__name__)

_store = None
_history = None


def _get_store() -> ReadingStore:
    global _store
    if _store is None:
        _store = ReadingStore.from_env()
    return _store


def _get_history() -> AlertHistory:
    global _history
    if _history is None:
        _history = AlertHistory()
    return _history


# ──────────────────────────────────────────────
# Message formatting
# ──────────────────────────────────────────────
def format_current(current: dict) -> str:
    summary = current["summary"]
    if summary["building_count"] == 0:
        return "❌ No recent readings available."
    text = "⚡ <b>CAMPUS NOW</b>\n\n"
    for r in sorted(current["readings"], key=lambda r: r["building_id"]):
        text += (f"• {r['building_name']}: <b>{r['energy_kwh']:.2f}</b> kWh, "
                 f"{r['temperature']:.1f}°F, {r['occupancy']} people\n")
    text += (f"\n🔋 <b>Total: {summary['total_energy_kwh']:.2f} kWh</b> "
             f"(${summary['total_cost']:.2f}) across {summary['building_count']} buildings")
    return text


def format_daily_report(metrics_by_building: Dict[str, dict]) -> str:
    if not metrics_by_building:
        return "❌ Not enough data for a 24h report."
    text = "📊 <b>24 HOUR REPORT</b>\n\n"
    total = 0.0
    for building_id in sorted(metrics_by_building):
        m = metrics_by_building[building_id]
        total += m["total_energy_kwh"]
        text += (f"• {m['building_name'] or building_id}: <b>{m['total_energy_kwh']:.2f}</b> kWh "
                 f"(peak {m['max_energy_kwh']:.2f})\n")
    text += f"\n🔋 <b>Campus total: {total:.2f} kWh</b>"
    return text


def format_building(detail: dict) -> str:
    if "latest" not in detail:
        return f"❌ {detail.get('message', 'No data')}"
    avg = detail["hourly_average"]
    latest = detail["latest"]
    return (
        f"🏢 <b>{detail['building_name']}</b> ({detail['building_type']})\n\n"
        f"Latest: <b>{latest['energy_kwh']:.2f}</b> kWh at {latest['timestamp']}\n"
        f"Last hour average: {avg['energy_kwh']:.2f} kWh, {avg['temperature']:.1f}°F, {avg['occupancy']} people"
    )


def format_alerts(rows: List[dict]) -> str:
    if not rows:
        return "✅ No recent alerts."
    text = "🚨 <b>RECENT ALERTS</b>\n\n"
    for row in rows:
        ts = row["timestamp"]
        when = ts.strftime("%Y-%m-%d %H:%M") if isinstance(ts, datetime) else str(ts)
        text += f"🟠 {row['building_id']} ({when}): {'; '.join(row['alerts'])}\n"
    return text


# ──────────────────────────────────────────────
# Data access
# ──────────────────────────────────────────────
def get_current_status() -> str:
    try:
        return format_current(current_summary(_get_store().recent(CURRENT_SCAN_LIMIT)))
    except Exception as e:
        log.error("Error querying InfluxDB: %s", e)
        return "⚠️ Could not reach the energy database."


def get_daily_report() -> str:
    try:
        now = datetime.now(timezone.utc)
        readings = _get_store().between(now - timedelta(hours=24), now)
    except Exception as e:
        log.error("Error querying InfluxDB: %s", e)
        return "⚠️ Could not reach the energy database."

    grouped: Dict[str, List[Reading]] = defaultdict(list)
    for r in readings:
        grouped[r.building_id].append(r)
    return format_daily_report({b: building_metrics(rs) for b, rs in grouped.items()})


def get_building_status(building_id: str) -> str:
    try:
        readings = _get_store().building_recent(building_id, WINDOW_SIZE)
    except Exception as e:
        log.error("Error querying InfluxDB: %s", e)
        return "⚠️ Could not reach the energy database."
    return format_building(building_window_summary(building_id, readings))


def get_recent_alerts() -> str:
    try:
        return format_alerts(_get_history().recent(5))
    except Exception as e:
        log.error("Error querying Postgres: %s", e)
        return "⚠️ Could not reach the alert database."


# ──────────────────────────────────────────────
# Handlers
# ──────────────────────────────────────────────
def _menu() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([
        [InlineKeyboardButton("⚡ Current status", callback_data="get_status")],
        [InlineKeyboardButton("📊 24h report", callback_data="get_report")],
        [InlineKeyboardButton("🚨 Recent alerts", callback_data="get_alerts")],
    ])


def _back() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([[InlineKeyboardButton("⬅️ Back to menu", callback_data="go_home")]])


async def start(update: Update, context: ContextTypes.DEFAULT_TYPE):
    msg = (
        "👋 <b>Campus Energy Monitor</b>\n\n"
        "• <code>/building [id]</code> - last hour for one building\n\n"
        "What would you like to see?"
    )
    await update.message.reply_html(msg, reply_markup=_menu())


async def building(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if not context.args:
        await update.message.reply_text("Usage: /building lab-01")
        return
    await update.message.reply_html(get_building_status(context.args[0]))


async def handle_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    query = update.callback_query
    await query.answer()

    if query.data == "get_status":
        await query.edit_message_text(get_current_status(), parse_mode="HTML", reply_markup=_back())
    elif query.data == "get_report":
        await query.edit_message_text("⌛ Building report...")
        await query.edit_message_text(get_daily_report(), parse_mode="HTML", reply_markup=_back())
    elif query.data == "get_alerts":
        await query.edit_message_text(get_recent_alerts(), parse_mode="HTML", reply_markup=_back())
    elif query.data == "go_home":
        await query.edit_message_text("What would you like to do?", reply_markup=_menu())


def main() -> None:
    config.setup_logging()
    if not config.TELEGRAM_TOKEN:
        log.error("TELEGRAM_TOKEN is not set")
        raise SystemExit(1)

    log.info("Campus energy bot started (polling)")
    app = ApplicationBuilder().token(config.TELEGRAM_TOKEN).build()
    app.add_handler(CommandHandler("start", start))
    app.add_handler(CommandHandler("building", building))
    app.add_handler(CallbackQueryHandler(handle_callback))
    app.run_polling()


if __name__ == "__main__":
    main()
