from telegram import KeyboardButton, ReplyKeyboardMarkup, Update, WebAppInfo
from telegram.ext import ContextTypes

from .config import Config
from .dispatcher import WebAppDataDispatcher


HELP_TEXT = """Mini App Relay Bot

Events from the Mini App (calls, SMS, user changes) are posted back here.

Commands:
/webapp - Open the Mini App
/help - Show this message"""


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start command."""
    await update.message.reply_text(HELP_TEXT)


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help command."""
    await update.message.reply_text(HELP_TEXT)


async def webapp_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /webapp command: show a keyboard button that opens the Mini App.

    Only keyboard (not inline) web_app buttons let the Mini App call sendData,
    which is what delivers web_app_data messages back to the bot.
    """
    config: Config = context.bot_data["config"]
    if not config.webapp_url:
        await update.message.reply_text("Mini App is not configured.")
        return

    button = KeyboardButton("Open Mini App", web_app=WebAppInfo(url=config.webapp_url))
    keyboard = ReplyKeyboardMarkup([[button]], resize_keyboard=True)
    await update.message.reply_text("Tap the button below to open the Mini App:", reply_markup=keyboard)


async def handle_web_app_data(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle data sent from the Mini App via Telegram.WebApp.sendData()."""
    dispatcher: WebAppDataDispatcher = context.bot_data["dispatcher"]
    result = await dispatcher.dispatch(update)
    print(f"[WebAppData] user={update.effective_user.id} action={result.action} → {result.status.value}")
