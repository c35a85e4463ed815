"""
Notification endpoints.

Endpoints Provided:
- `GET /api/notifications/{wallet_address}`: the user's inbox, newest first,
  with the unread count.
- `POST /api/notifications/{notification_id}/mark-read`: mark one of the
  caller's notifications read.
- `POST /api/notifications/mark-all-read`: mark all of them read.
"""

import logging

from fastapi import APIRouter, Depends, Query

from core.logging_config import log_function_call
from core.schemas import APIModel, BulkUpdateResponse, NotificationList, NotificationView
from core.validation import DEFAULT_PAGE_LIMIT
from services.notification_service import NotificationService

from .dependencies import get_notification_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])


class MarkReadRequest(APIModel):
    wallet_address: str


@router.get("/{wallet_address}", response_model=NotificationList)
@log_function_call(logger)
async def list_notifications(
    wallet_address: str,
    page: int = Query(1),
    limit: int = Query(DEFAULT_PAGE_LIMIT),
    notifications: NotificationService = Depends(get_notification_service),
):
    return await notifications.list_notifications(wallet_address, page, limit)


@router.post("/mark-all-read", response_model=BulkUpdateResponse)
@log_function_call(logger)
async def mark_all_read(
    request: MarkReadRequest,
    notifications: NotificationService = Depends(get_notification_service),
):
    return await notifications.mark_all_read(request.wallet_address)


@router.post("/{notification_id}/mark-read", response_model=NotificationView)
@log_function_call(logger)
async def mark_notification_read(
    notification_id: int,
    request: MarkReadRequest,
    notifications: NotificationService = Depends(get_notification_service),
):
    return await notifications.mark_notification_read(
        request.wallet_address, notification_id
    )
