"""
Reminder trigger endpoint.

Called once a minute by an external scheduler (e.g. pg_cron + pg_net, or a
cloud scheduler job). Each call runs one dispatch cycle.

Endpoint: GET|POST /api/send-study-reminders
Response (200): {
  "message": "Processed 3 sessions, sent 2 emails, 0 failed",
  "emailsSent": 2,
  "emailsFailed": 0,
  "sessionsProcessed": 3
}
Response (500): { "error": "..." }
"""
from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse

from studyblock.config import get_settings
from studyblock.services.auth_service import require_project_token
from studyblock.services.reminder_service import ReminderDispatcher, get_reminder_dispatcher
from studyblock.utils.logger import get_logger
from studyblock.utils.errors import AppError

router = APIRouter()
logger = get_logger(__name__)

ALLOWED_HEADERS = "authorization, x-client-info, apikey, content-type"


def cors_headers() -> dict:
    return {
        "Access-Control-Allow-Origin": get_settings().cors_allow_origin,
        "Access-Control-Allow-Headers": ALLOWED_HEADERS,
    }


@router.options("/send-study-reminders")
async def send_study_reminders_preflight():
    """CORS pre-flight: empty success response."""
    return Response(status_code=200, headers=cors_headers())


@router.api_route("/send-study-reminders", methods=["GET", "POST"])
async def send_study_reminders(
    _claims: dict = Depends(require_project_token),
    dispatcher: ReminderDispatcher = Depends(get_reminder_dispatcher),
):
    """
    Run one reminder dispatch cycle.

    Per-user failures are absorbed by the dispatcher and show up in
    emailsFailed. Only a failure to fetch candidates reaches here.
    """
    try:
        summary = await dispatcher.run()
    except AppError as e:
        logger.error(f"Error in send-study-reminders: {e.message}")
        return JSONResponse({"error": e.message}, status_code=500, headers=cors_headers())
    except Exception as e:
        logger.exception("Error in send-study-reminders")
        return JSONResponse({"error": str(e)}, status_code=500, headers=cors_headers())

    return JSONResponse(summary.to_response(), status_code=200, headers=cors_headers())
