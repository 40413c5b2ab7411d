from fastapi import APIRouter, Depends
from typing import Optional

from .database import db
from .feed_routes import get_viewer_id
from .responses import ApiResponse
from .services.engagement_service import EngagementService

router = APIRouter()


def get_engagement_service():
    return EngagementService(db)


@router.post("/likes/toggle/{subject_type}/{subject_id}")
def toggle_like(
    subject_type: str,
    subject_id: str,
    viewer_id: Optional[str] = Depends(get_viewer_id),
    service: EngagementService = Depends(get_engagement_service),
):
    """Likes or unlikes a video, comment or tweet for the current viewer."""
    result = service.toggle_like(subject_type, subject_id, viewer_id)
    message = "Liked successfully" if result["isLiked"] else "Unliked successfully"
    return ApiResponse(data=result, message=message)


@router.post("/subscriptions/c/{channel_id}")
def toggle_subscription(
    channel_id: str,
    viewer_id: Optional[str] = Depends(get_viewer_id),
    service: EngagementService = Depends(get_engagement_service),
):
    result = service.toggle_subscription(channel_id, viewer_id)
    message = "Channel subscribed successfully" if result["isSubscribed"] else "Channel unsubscribed successfully"
    return ApiResponse(data=result, message=message)
