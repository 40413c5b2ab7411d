from fastapi import APIRouter, Depends, Header
from typing import Annotated, Optional

from .database import db
from .responses import ApiResponse
from .services.view_projector import FeedTarget, ViewProjector

router = APIRouter()


# --- Dependencies ---
def get_projector():
    return ViewProjector(db)


def get_viewer_id(x_user_id: Annotated[str | None, Header()] = None):
    """Viewer identity as already resolved by the auth layer in front of us; None when anonymous."""
    return x_user_id or None


# --- Feed Endpoints ---

@router.get("/videos")
def list_videos(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    query: Optional[str] = None,
    sortBy: Optional[str] = None,
    sortType: Optional[str] = None,
    userId: Optional[str] = None,
    viewer_id: Optional[str] = Depends(get_viewer_id),
    projector: ViewProjector = Depends(get_projector),
):
    """Published videos, optionally filtered by owner and a title/description search."""
    result = projector.project_feed(
        FeedTarget.VIDEO,
        filters={"userId": userId},
        viewer_id=viewer_id,
        page=page,
        page_size=limit,
        query=query,
        sort_by=sortBy,
        sort_type=sortType,
    )
    return ApiResponse(data=result.model_dump(), message="Successfully fetched videos.")


@router.get("/videos/{video_id}")
def get_video(
    video_id: str,
    viewer_id: Optional[str] = Depends(get_viewer_id),
    projector: ViewProjector = Depends(get_projector),
):
    video = projector.get_video(video_id, viewer_id=viewer_id)
    return ApiResponse(data=video, message="Video details fetched successfully")


@router.get("/comments/{video_id}")
def list_video_comments(
    video_id: str,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    viewer_id: Optional[str] = Depends(get_viewer_id),
    projector: ViewProjector = Depends(get_projector),
):
    result = projector.project_feed(
        FeedTarget.COMMENT_BY_VIDEO, filters={"videoId": video_id},
        viewer_id=viewer_id, page=page, page_size=limit,
    )
    return ApiResponse(data=result.model_dump(), message="Comments fetched successfully")


@router.get("/tweets/user/{user_id}")
def list_user_tweets(
    user_id: str,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    viewer_id: Optional[str] = Depends(get_viewer_id),
    projector: ViewProjector = Depends(get_projector),
):
    result = projector.project_feed(
        FeedTarget.TWEET_BY_USER, filters={"userId": user_id},
        viewer_id=viewer_id, page=page, page_size=limit,
    )
    return ApiResponse(data=result.model_dump(), message="Tweets fetched successfully")


@router.get("/subscriptions/c/{channel_id}")
def list_channel_subscribers(
    channel_id: str,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    viewer_id: Optional[str] = Depends(get_viewer_id),
    projector: ViewProjector = Depends(get_projector),
):
    result = projector.project_feed(
        FeedTarget.SUBSCRIBER_LIST, filters={"channelId": channel_id},
        viewer_id=viewer_id, page=page, page_size=limit,
    )
    return ApiResponse(data=result.model_dump(), message="Subscribers fetched successfully")


@router.get("/likes/videos")
def list_liked_videos(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    viewer_id: Optional[str] = Depends(get_viewer_id),
    projector: ViewProjector = Depends(get_projector),
):
    result = projector.liked_videos(viewer_id, page=page, page_size=limit)
    return ApiResponse(data=result.model_dump(), message="Liked videos fetched successfully")
