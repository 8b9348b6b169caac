"""Task router: CRUD, reminders, notification overrides and cleanup."""
import logging
import math
from fastapi import APIRouter, Depends, HTTPException, Request, status, Query
from fastapi.responses import JSONResponse
from typing import Any, Dict, List, Optional

from taskmanager.schemas.task import (
    CustomNotifications,
    DashboardStats,
    ReminderCreate,
    TaskCountdown,
    TaskCreate,
    TaskResponse,
    TaskUpdate,
    PRIORITY_PATTERN,
    STATUS_PATTERN,
)
from taskmanager.errors import NotFound, ReminderValidationError
from taskmanager.services.container import Services
from taskmanager.services.task_service import TaskService
from taskmanager.middleware.auth import get_current_user, CurrentUser
from taskmanager.db.config import get_session
from taskmanager.models import User
from sqlmodel import Session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["Tasks"])


def get_task_service(session: Session = Depends(get_session)) -> TaskService:
    """Dependency for getting TaskService instance."""
    return TaskService(session)


def get_services(request: Request) -> Services:
    return request.app.state.services


def _task_not_found():
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")


@router.get("", response_model=Dict[str, Any])
async def list_tasks(
    current_user: CurrentUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
    status_filter: Optional[str] = Query(None, alias="status", pattern=STATUS_PATTERN),
    priority: Optional[str] = Query(None, pattern=PRIORITY_PATTERN),
    search: Optional[str] = Query(None, description="Search keyword for title/description"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    """List the authenticated user's tasks with filters and pagination."""
    tasks, total = service.list_for_user(
        current_user.user_id,
        status=status_filter,
        priority=priority,
        search=search,
        page=page,
        limit=limit,
    )
    return {
        "tasks": [TaskResponse.model_validate(task) for task in tasks],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit) if total else 0,
        },
    }


@router.get("/stats", response_model=DashboardStats)
async def dashboard_stats(
    current_user: CurrentUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    return service.dashboard_stats(current_user.user_id)


@router.get("/countdown", response_model=List[TaskCountdown])
async def countdown(
    current_user: CurrentUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
    limit: int = Query(20, ge=1, le=100),
):
    """Pending tasks nearest their due date first."""
    return service.countdown(current_user.user_id, limit=limit)


@router.get("/cleanup/stats")
async def cleanup_stats(
    current_user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return {"stats": services.cleanup.get_stats(), "scheduler": services.cleanup.get_status()}


@router.post("/cleanup/run")
async def run_cleanup(
    current_user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Run the retention cleanup immediately."""
    result = services.cleanup.run_cleanup_now()
    if not result["success"]:
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={
            "success": False,
            "error": result["error"],
            "timestamp": result["timestamp"].isoformat(),
        })
    return result


@router.delete("/bulk/completed")
async def bulk_delete_completed(
    older_than: int = Query(30, ge=0, description="Delete completed tasks older than this many days"),
    current_user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Delete the caller's completed tasks older than ``older_than`` days."""
    result = services.cleanup.cleanup_by_criteria(older_than, user_id=current_user.user_id)
    if not result["success"]:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=result["error"])
    return {"message": f"Deleted {result['deleted_count']} completed tasks", "deleted_count": result["deleted_count"]}


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    task_data: TaskCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    """Create a task with its reminders and notification overrides."""
    try:
        return service.create(current_user.user_id, task_data)
    except ReminderValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    """Get a specific task by ID."""
    task = service.get_by_id(task_id, current_user.user_id)
    if not task:
        raise _task_not_found()
    return task


@router.put("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: int,
    task_data: TaskUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    """Update a task; omitted fields are left untouched."""
    try:
        task = service.update(task_id, current_user.user_id, task_data)
    except ReminderValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if not task:
        raise _task_not_found()
    return task


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    if not service.delete(task_id, current_user.user_id):
        raise _task_not_found()


@router.patch("/{task_id}/complete", response_model=TaskResponse)
async def complete_task(
    task_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
    services: Services = Depends(get_services),
):
    """Mark a task completed and send the completion notification."""
    task = service.complete(task_id, current_user.user_id)
    if not task:
        raise _task_not_found()

    user = service.session.get(User, current_user.user_id)
    if user is not None:
        await services.notifier.send_task_completion(task, user)
    return task


@router.post("/{task_id}/reminders", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def add_reminder(
    task_id: int,
    reminder: ReminderCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    try:
        task = service.add_reminder(task_id, current_user.user_id, reminder)
    except ReminderValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if not task:
        raise _task_not_found()
    return task


@router.delete("/{task_id}/reminders/{reminder_id}", response_model=TaskResponse)
async def remove_reminder(
    task_id: int,
    reminder_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    try:
        task = service.remove_reminder(task_id, current_user.user_id, reminder_id)
    except NotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if not task:
        raise _task_not_found()
    return task


@router.put("/{task_id}/notifications", response_model=TaskResponse)
async def update_task_notifications(
    task_id: int,
    settings: CustomNotifications,
    current_user: CurrentUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    """Replace the task's channel switches and message overrides."""
    task = service.update_custom_notifications(task_id, current_user.user_id, settings)
    if not task:
        raise _task_not_found()
    return task
