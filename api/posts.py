"""
Post, like and comment endpoints.

Endpoints Provided:
- `POST /api/posts`: create a post.
- `GET /api/posts`: newest posts first, paginated.
- `GET /api/posts/user/{wallet_address}`: posts by one author.
- `GET /api/posts/{post_id}`: a single post with likes and comments.
- `POST /api/posts/{post_id}/like`: toggle the caller's like.
- `POST /api/posts/{post_id}/comment`: comment on a post.
- `DELETE /api/posts/{post_id}`: delete the caller's own post.
- `DELETE /api/posts/comments/{comment_id}`: delete the caller's own comment.

Each mutation responds with the post as it is after the change, so the client
can redraw counts without a second request.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from core.logging_config import log_function_call
from core.schemas import APIModel, MessageResponse, PostView
from core.validation import DEFAULT_PAGE_LIMIT
from services.post_service import PostService

from .dependencies import get_post_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/posts", tags=["Posts"])


class CreatePostRequest(APIModel):
    wallet_address: str
    content: str
    media_url: Optional[str] = None
    media_type: Optional[str] = None


class WalletRequest(APIModel):
    wallet_address: str


class CommentRequest(APIModel):
    wallet_address: str
    content: str
    media_url: Optional[str] = None


@router.post("", response_model=PostView, status_code=201)
@log_function_call(logger)
async def create_post(
    request: CreatePostRequest,
    posts: PostService = Depends(get_post_service),
):
    return await posts.create_post(
        request.wallet_address,
        request.content,
        media_url=request.media_url,
        media_type=request.media_type,
    )


@router.get("", response_model=List[PostView])
@log_function_call(logger)
async def list_posts(
    page: int = Query(1),
    limit: int = Query(DEFAULT_PAGE_LIMIT),
    posts: PostService = Depends(get_post_service),
):
    return await posts.list_posts(page, limit)


@router.get("/user/{wallet_address}", response_model=List[PostView])
@log_function_call(logger)
async def list_user_posts(
    wallet_address: str,
    page: int = Query(1),
    limit: int = Query(DEFAULT_PAGE_LIMIT),
    posts: PostService = Depends(get_post_service),
):
    return await posts.list_user_posts(wallet_address, page, limit)


@router.get("/{post_id}", response_model=PostView)
@log_function_call(logger)
async def get_post(post_id: int, posts: PostService = Depends(get_post_service)):
    return await posts.get_post(post_id)


@router.post("/{post_id}/like", response_model=PostView)
@log_function_call(logger)
async def toggle_like(
    post_id: int,
    request: WalletRequest,
    posts: PostService = Depends(get_post_service),
):
    """Like the post, or remove the like if the caller already liked it"""
    return await posts.toggle_like(request.wallet_address, post_id)


@router.post("/{post_id}/comment", response_model=PostView)
@log_function_call(logger)
async def add_comment(
    post_id: int,
    request: CommentRequest,
    posts: PostService = Depends(get_post_service),
):
    return await posts.add_comment(
        request.wallet_address, post_id, request.content, media_url=request.media_url
    )


@router.delete("/comments/{comment_id}", response_model=MessageResponse)
@log_function_call(logger)
async def delete_comment(
    comment_id: int,
    request: WalletRequest,
    posts: PostService = Depends(get_post_service),
):
    return await posts.delete_comment(request.wallet_address, comment_id)


@router.delete("/{post_id}", response_model=MessageResponse)
@log_function_call(logger)
async def delete_post(
    post_id: int,
    request: WalletRequest,
    posts: PostService = Depends(get_post_service),
):
    return await posts.delete_post(request.wallet_address, post_id)
