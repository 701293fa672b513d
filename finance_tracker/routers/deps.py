from datetime import date

from fastapi import Query, Request

from finance_tracker import config
from finance_tracker.services.notifications import NotificationService


def get_today() -> date:
    """Reference date for derived views; overridden in tests"""
    return date.today()


def get_notification_service(request: Request) -> NotificationService:
    return request.app.state.notifications


class Pagination:
    def __init__(
        self,
        page: int = Query(1, ge=1, description="1-indexed page number"),
        limit: int = Query(config.DEFAULT_PAGE_SIZE, ge=1, le=config.MAX_PAGE_SIZE, description="Page size"),
    ):
        self.page = page
        self.limit = limit
