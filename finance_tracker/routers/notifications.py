from fastapi import APIRouter, Depends

from finance_tracker.models.common import success_response
from finance_tracker.db.core import UserDB
from finance_tracker.services.security import get_current_user
from finance_tracker.services.notifications import NotificationService
from finance_tracker.routers.deps import get_notification_service

router = APIRouter(
    prefix="/api/notifications",
    tags=["notifications"],
)


@router.get("")
def read_notifications(
    current_user: UserDB = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service),
):
    """
    Notification history, newest first, with the unread count.
    """
    return success_response({
        "notifications": notifications.history(current_user.id),
        "unread_count": notifications.unread_count(current_user.id),
    })


@router.post("/read-all")
def mark_all_read(
    current_user: UserDB = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service),
):
    marked = notifications.mark_all_as_read(current_user.id)
    return success_response({"marked": marked}, message="All notifications marked as read")


@router.post("/{notification_id}/read")
def mark_read(
    notification_id: int,
    current_user: UserDB = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service),
):
    notification = notifications.mark_as_read(current_user.id, notification_id)
    return success_response({"notification": notification})


@router.delete("")
def clear_notifications(
    current_user: UserDB = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service),
):
    notifications.clear(current_user.id)
    return success_response(message="Notifications cleared")
