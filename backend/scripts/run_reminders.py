"""
Run one reminder dispatch cycle without the HTTP server.

For hosts where a system cron is simpler than an HTTP scheduler:

    * * * * * cd /srv/studyblock/backend && python scripts/run_reminders.py
"""
import asyncio
import json
import sys

from studyblock.services.reminder_service import get_reminder_dispatcher
from studyblock.utils.logger import setup_logging


async def run() -> int:
    setup_logging()
    dispatcher = get_reminder_dispatcher()
    try:
        summary = await dispatcher.run()
    except Exception as e:
        print(json.dumps({"error": str(e)}))
        return 1

    print(json.dumps(summary.to_response()))
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(run()))
