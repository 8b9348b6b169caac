"""Notification router: delivery stats, service status, test sends and manual triggers."""
import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from taskmanager.errors import NotConfigured, NotFound
from taskmanager.middleware.auth import CurrentUser, get_current_user
from taskmanager.schemas.notification import CustomNotificationRequest, EmailTestRequest, TaskEmailRequest
from taskmanager.services.container import Services
from taskmanager.services.notification_service import ChannelResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["Notifications"])


def get_services(request: Request) -> Services:
    return request.app.state.services


def _error_response(error: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=jsonable_encoder({"success": False, "error": error, **extra}))


def _email_result(result: ChannelResult):
    if result.success:
        return {"success": True, "message_id": result.message_id}
    status_code = status.HTTP_400_BAD_REQUEST if result.error_code == "not_configured" else status.HTTP_500_INTERNAL_SERVER_ERROR
    return _error_response(result.error, status_code)


@router.get("")
async def notification_stats(
    current_user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Per channel/status delivery counts for the last 30 days."""
    since = services.notifier.clock() - timedelta(days=30)
    return {"stats": services.log_store.stats_for_user(current_user.user_id, since), "period": "30 days"}


@router.get("/status")
async def notification_status(
    current_user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return {
        "services": services.notifier.get_service_status(),
        "schedulers": {
            "reminders": services.scanner.status(),
            "cleanup": services.cleanup.get_status(),
        },
        "metrics": services.metrics.get_metrics(),
    }


@router.post("/test/email")
async def send_test_email(
    body: EmailTestRequest,
    current_user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    result = await services.notifier.send_email(
        body.email, body.subject, body.message, user_id=current_user.user_id, event="test"
    )
    return _email_result(result)


@router.post("/test/connection")
async def test_connection(
    current_user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Log in to the SMTP server without sending anything."""
    try:
        result = await services.notifier.test_email_connection()
    except NotConfigured as e:
        return _error_response(e.message, status.HTTP_400_BAD_REQUEST)
    if not result["success"]:
        return _error_response(result["message"])
    return result


@router.post("/send/task-email")
async def send_task_email(
    body: TaskEmailRequest,
    current_user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Send a reminder, overdue or completion email for one of the caller's tasks."""
    task = services.store.get_task(body.task_id, current_user.user_id)
    if task is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")

    content = services.notifier.resolve_content(body.email_type, task)
    result = await services.notifier.send_email(
        body.email,
        content.subject,
        body.custom_message or content.body,
        task_id=task.id,
        user_id=current_user.user_id,
        event=body.email_type,
        summary=f"{body.email_type}: {task.title}",
    )
    return _email_result(result)


@router.post("/send/custom")
async def send_custom(
    body: CustomNotificationRequest,
    current_user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    result = await services.notifier.send_custom_notification(
        current_user.user_id, body.subject, body.message, body.email
    )
    if not result["success"]:
        error = result["results"]["email"]
        status_code = status.HTTP_400_BAD_REQUEST if error.get("error_code") == "not_configured" else status.HTTP_500_INTERNAL_SERVER_ERROR
        return _error_response(error.get("error"), status_code, results=result["results"])
    return result


@router.post("/trigger/scan")
async def trigger_scan(
    current_user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Run one reminder scan now."""
    result = await services.scanner.scan()
    if not result["success"]:
        return _error_response(result["error"], timestamp=result["timestamp"])
    return result


@router.post("/trigger/overdue")
async def trigger_overdue(
    current_user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    result = await services.scanner.sweep_overdue()
    if not result["success"]:
        return _error_response(result["error"], timestamp=result["timestamp"])
    return result


@router.post("/test/reminder/{task_id}")
async def test_reminder(
    task_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Send a reminder for one task immediately; sent flags are not touched."""
    try:
        return await services.scanner.trigger_test_reminder(task_id, current_user.user_id)
    except NotFound as e:
        return _error_response(str(e), status.HTTP_404_NOT_FOUND)
