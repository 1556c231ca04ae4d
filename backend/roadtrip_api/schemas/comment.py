"""
Road Trip Planner Backend — Comment Schemas
============================================

What:  Bodies for creating/editing comments and the threaded response shape.
How:   `replies` lists the IDs of direct replies; clients fetch threads by
       matching `parentCommentId`.
"""

import uuid
from datetime import datetime
from typing import Annotated, List, Optional

from pydantic import StringConstraints

from roadtrip_api.schemas.common import CamelModel, Pagination
from roadtrip_api.schemas.user import UserSummary

CommentText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=500)]


class CommentCreateRequest(CamelModel):
    text: CommentText
    parent_comment_id: Optional[uuid.UUID] = None


class CommentUpdateRequest(CamelModel):
    text: CommentText


class CommentResponse(CamelModel):
    id: uuid.UUID
    text: str
    user: UserSummary
    trip_id: uuid.UUID
    parent_comment_id: Optional[uuid.UUID] = None
    replies: List[uuid.UUID] = []
    likes: List[uuid.UUID] = []
    like_count: int = 0
    is_edited: bool = False
    edited_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class CommentListResponse(CamelModel):
    comments: List[CommentResponse]
    pagination: Pagination


class CommentLikeResponse(CamelModel):
    likes: List[uuid.UUID]
    liked: bool
    like_count: int
