#!/usr/bin/env python

import argparse
import configparser

from telegram.ext import Application, CommandHandler, MessageHandler, filters

from miniapp_relay.config import load_config
from miniapp_relay.dispatcher import WebAppDataDispatcher
from miniapp_relay.handlers import (
    handle_web_app_data, help_command, start_command, webapp_command,
)
from miniapp_relay.web_auth import InitDataVerifier


def main():
    parser = argparse.ArgumentParser(description="Mini App event relay Telegram bot")
    parser.add_argument("-c", "--config", type=str, default="config.ini", help="Path to config file")
    args = parser.parse_args()

    config_file = configparser.ConfigParser()
    if not config_file.read(args.config):
        parser.error(f"config file not found: {args.config}")
    config = load_config(config_file)

    verifier = InitDataVerifier(config.telegram_token, max_age_seconds=config.init_data_max_age)

    app = Application.builder().token(config.telegram_token).concurrent_updates(True).build()
    app.bot_data["config"] = config
    app.bot_data["dispatcher"] = WebAppDataDispatcher(verifier)

    app.add_handler(CommandHandler("start", start_command))
    app.add_handler(CommandHandler("help", help_command))
    app.add_handler(CommandHandler("webapp", webapp_command))
    app.add_handler(MessageHandler(filters.StatusUpdate.WEB_APP_DATA, handle_web_app_data))

    print("[Startup] Bot started...")
    app.run_polling()


if __name__ == "__main__":
    main()
