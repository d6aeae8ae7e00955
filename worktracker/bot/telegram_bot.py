"""
Work Tracker — Telegram control surface.

A thin remote for the daily reset engine: check when the next rollover
happens, force one, or change the reset time and retention horizon.
Reset announcements go out through the same bot.

Security-first: unauthorized users are silently ignored.
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import TYPE_CHECKING, Any, Callable, Coroutine

from telegram import Update
from telegram.ext import Application, ApplicationBuilder, CommandHandler, ContextTypes

from worktracker.config import settings
from worktracker.core.errors import SettingsError
from worktracker.core.reset_scheduler import ResetScheduler

if TYPE_CHECKING:
    from worktracker.core.reset_service import DailyResetService, ResetReport

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Security: silent-ignore decorator
# ---------------------------------------------------------------------------


def authorized_only(
    func: Callable[..., Coroutine[Any, Any, None]],
) -> Callable[..., Coroutine[Any, Any, None]]:
    """Decorator that silently ignores messages from unauthorized users."""

    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        user = update.effective_user
        if user is None or user.id not in settings.ALLOWED_USER_IDS:
            uid = user.id if user else "unknown"
            logger.warning("Unauthorized access attempt from user_id=%s", uid)
            return  # Silent ignore
        return await func(update, context)

    return wrapper


def _service(context: ContextTypes.DEFAULT_TYPE) -> DailyResetService:
    return context.bot_data["reset_service"]


def _format_report(report: ResetReport) -> str:
    lines = [f"*Daily reset for {report.date}*"]
    for outcome in report.phases:
        mark = "✅" if outcome.ok else "❌"
        detail = "" if outcome.ok else f" — {outcome.error}"
        lines.append(f"{mark} {outcome.phase.value.replace('_', ' ')}{detail}")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start — welcome message."""
    await update.message.reply_text(
        "Welcome to *Work Tracker*!\n\n"
        "Your checklist, todos and meetings roll over to a fresh day automatically.\n"
        "Type /help for the full command list.",
        parse_mode="Markdown",
    )


@authorized_only
async def cmd_help(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help — list available commands."""
    await update.message.reply_text(
        "*Available commands:*\n"
        "/resetstatus — Last and next daily reset\n"
        "/reset — Run the daily reset now\n"
        "/resettime <HH:MM> — Change when a new day starts\n"
        "/retention <days> — Keep history for 7–365 days\n"
        "/help — Show this message",
        parse_mode="Markdown",
    )


@authorized_only
async def cmd_resetstatus(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /resetstatus — show reset statistics."""
    stats = await _service(context).get_reset_stats()
    if stats is None:
        await update.message.reply_text("Couldn't load reset status. Please try again.")
        return

    until = stats.time_until_next_reset
    lines = [
        "*Daily reset status*",
        f"Last reset: {stats.last_reset_date or 'never'}",
        f"Reset time: {stats.reset_time}",
        f"Next reset in {until.hours}h {until.minutes}m",
        f"Total resets recorded: {stats.total_resets}",
    ]
    if stats.is_reset_due:
        lines.append("A reset is due and will run shortly.")
    if stats.recent_resets:
        lines.append("\n*Recent:*")
        lines.extend(f"  {r.date} ({r.type})" for r in stats.recent_resets)
    await update.message.reply_text("\n".join(lines), parse_mode="Markdown")


@authorized_only
async def cmd_reset(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /reset — run a manual reset."""
    report = await _service(context).perform_manual_reset()
    if report is None:
        await update.message.reply_text("A reset is already running. Try again in a moment.")
        return
    if report.succeeded:
        await update.message.reply_text("Daily reset completed successfully!")
    else:
        await update.message.reply_text(_format_report(report), parse_mode="Markdown")


@authorized_only
async def cmd_resettime(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /resettime <HH:MM>."""
    args = context.args
    if not args:
        current = _service(context).reset_time
        await update.message.reply_text(f"Reset time is {current}.\nUsage: /resettime HH:MM")
        return

    try:
        value = await _service(context).update_reset_time(args[0])
    except SettingsError as exc:
        await update.message.reply_text(str(exc))
        return
    except Exception as exc:
        logger.error("/resettime error: %s", exc)
        await update.message.reply_text("Couldn't save the reset time. Please try again.")
        return
    await update.message.reply_text(f"Reset time updated to {value}.")


@authorized_only
async def cmd_retention(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /retention <days>."""
    args = context.args
    if not args:
        current = _service(context).data_retention_days
        await update.message.reply_text(f"History is kept for {current} days.\nUsage: /retention <days>")
        return

    try:
        value = await _service(context).update_retention_days(args[0])
    except SettingsError as exc:
        await update.message.reply_text(str(exc))
        return
    except Exception as exc:
        logger.error("/retention error: %s", exc)
        await update.message.reply_text("Couldn't save the retention setting. Please try again.")
        return
    await update.message.reply_text(f"History will be kept for {value} days.")


# ---------------------------------------------------------------------------
# Application wiring
# ---------------------------------------------------------------------------


def build_app(service: DailyResetService) -> Application:
    """Build the Telegram Application; reset checks run on its JobQueue."""

    async def _post_init(app: Application) -> None:
        if settings.ANNOUNCE_RESETS and settings.ALLOWED_USER_IDS:
            from worktracker.adapters.telegram_notifier import TelegramNotifier
            from worktracker.core.reset_announcer import attach_announcer

            attach_announcer(service.events, TelegramNotifier(app.bot), settings.ALLOWED_USER_IDS)
        await scheduler.start()

    async def _post_shutdown(app: Application) -> None:
        await scheduler.stop()

    app = (
        ApplicationBuilder()
        .token(settings.TELEGRAM_BOT_TOKEN)
        .post_init(_post_init)
        .post_shutdown(_post_shutdown)
        .build()
    )
    app.bot_data["reset_service"] = service
    scheduler = ResetScheduler(
        service,
        interval_seconds=settings.CHECK_INTERVAL_SECONDS,
        job_queue=app.job_queue,
    )

    app.add_handler(CommandHandler("start", cmd_start))
    app.add_handler(CommandHandler("help", cmd_help))
    app.add_handler(CommandHandler("resetstatus", cmd_resetstatus))
    app.add_handler(CommandHandler("reset", cmd_reset))
    app.add_handler(CommandHandler("resettime", cmd_resettime))
    app.add_handler(CommandHandler("retention", cmd_retention))

    logger.info("Telegram bot application built with %d handlers", len(app.handlers[0]))
    return app
