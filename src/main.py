"""
Daros Coffee storefront - Entry point.
Run (optionally after building cache):  python -m src.main
"""

import os
import sys
import logging

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from dotenv import load_dotenv

load_dotenv(os.path.join(ROOT, ".env"))


def main():
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    from src.api.routes import create_app
    app = create_app()
    port = int(os.environ.get("PORT", 5000))

    bot_configured = bool(os.environ.get("TELEGRAM_BOT_TOKEN")) and bool(os.environ.get("TELEGRAM_CHAT_ID"))
    fallback_status = "[OK] configured" if bot_configured else "[!] not configured (set TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID)"

    print(f"API at http://127.0.0.1:{port} (uses cache/ if present)")
    print(f"Telegram Bot API fallback: {fallback_status}")
    app.run(host="0.0.0.0", port=port, debug=os.environ.get("FLASK_DEBUG", "true").lower() == "true")


if __name__ == "__main__":
    main()
