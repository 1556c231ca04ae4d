"""
Road Trip Planner Backend — Comment Service Tests
==================================================

What we test:
    ✅ Create top-level comments and replies (parent must be on the same trip)
    ✅ Listing: newest first, replies included, reply IDs on the parent
    ✅ Edit flags only when the text actually changes
    ✅ Deleting a parent removes its replies
    ✅ Like toggle
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from roadtrip_api.exceptions import ForbiddenError, NotFoundError, ValidationError
from roadtrip_api.models.comment import Comment
from roadtrip_api.services.comment_service import comment_service


class TestCreateComment:
    @pytest.mark.asyncio
    async def test_top_level_comment(self, db, make_user, make_trip):
        ann = await make_user()
        trip = await make_trip(ann)

        comment = await comment_service.create(db, ann, trip.id, {"text": "  Great route!  "})

        assert comment.text == "Great route!"
        assert comment.user.id == ann.id
        assert comment.parent_comment_id is None
        assert comment.replies == [] and comment.like_count == 0

    @pytest.mark.asyncio
    async def test_reply_shows_on_parent(self, db, make_user, make_trip):
        ann = await make_user()
        bob = await make_user()
        trip = await make_trip(ann)
        parent = await comment_service.create(db, ann, trip.id, {"text": "Any tips?"})

        reply = await comment_service.create(
            db, bob, trip.id, {"text": "Leave early.", "parentCommentId": str(parent.id)}
        )
        listing = await comment_service.list_for_trip(db, trip.id)

        assert reply.parent_comment_id == parent.id
        by_id = {c.id: c for c in listing.comments}
        assert by_id[parent.id].replies == [reply.id]

    @pytest.mark.asyncio
    async def test_parent_on_another_trip(self, db, make_user, make_trip):
        ann = await make_user()
        first = await make_trip(ann)
        second = await make_trip(ann)
        parent = await comment_service.create(db, ann, first.id, {"text": "Hello"})

        with pytest.raises(NotFoundError) as exc_info:
            await comment_service.create(
                db, ann, second.id, {"text": "Wrong thread", "parentCommentId": str(parent.id)}
            )
        assert exc_info.value.message == "Parent comment not found"

    @pytest.mark.asyncio
    async def test_unknown_trip(self, db, make_user):
        ann = await make_user()
        with pytest.raises(NotFoundError):
            await comment_service.create(db, ann, uuid.uuid4(), {"text": "Hello"})

    @pytest.mark.asyncio
    async def test_blank_text(self, db, make_user, make_trip):
        ann = await make_user()
        trip = await make_trip(ann)
        with pytest.raises(ValidationError):
            await comment_service.create(db, ann, trip.id, {"text": "   "})

    @pytest.mark.asyncio
    async def test_text_too_long(self, db, make_user, make_trip):
        ann = await make_user()
        trip = await make_trip(ann)
        with pytest.raises(ValidationError):
            await comment_service.create(db, ann, trip.id, {"text": "x" * 501})


class TestListComments:
    @pytest.mark.asyncio
    async def test_newest_first_with_pagination(self, db, make_user, make_trip):
        ann = await make_user()
        trip = await make_trip(ann)
        start = datetime(2025, 6, 1, tzinfo=timezone.utc)
        for i in range(12):
            db.add(
                Comment(
                    text=f"comment {i}",
                    user_id=ann.id,
                    trip_id=trip.id,
                    created_at=start + timedelta(minutes=i),
                )
            )
        await db.flush()

        first_page = await comment_service.list_for_trip(db, trip.id)
        second_page = await comment_service.list_for_trip(db, trip.id, page=2)

        assert [c.text for c in first_page.comments][:2] == ["comment 11", "comment 10"]
        assert len(first_page.comments) == 10
        assert len(second_page.comments) == 2
        assert first_page.pagination.total_items == 12

    @pytest.mark.asyncio
    async def test_unknown_trip(self, db):
        with pytest.raises(NotFoundError):
            await comment_service.list_for_trip(db, uuid.uuid4())


class TestEditAndDelete:
    @pytest.mark.asyncio
    async def test_edit_sets_flag(self, db, make_user, make_trip):
        ann = await make_user()
        trip = await make_trip(ann)
        comment = await comment_service.create(db, ann, trip.id, {"text": "First draft"})

        edited = await comment_service.update(db, ann, comment.id, {"text": "Second draft"})

        assert edited.text == "Second draft"
        assert edited.is_edited is True
        assert edited.edited_at is not None

    @pytest.mark.asyncio
    async def test_same_text_is_not_an_edit(self, db, make_user, make_trip):
        ann = await make_user()
        trip = await make_trip(ann)
        comment = await comment_service.create(db, ann, trip.id, {"text": "Unchanged"})

        result = await comment_service.update(db, ann, comment.id, {"text": "Unchanged"})
        assert result.is_edited is False

    @pytest.mark.asyncio
    async def test_only_author_can_edit(self, db, make_user, make_trip):
        ann = await make_user()
        bob = await make_user()
        trip = await make_trip(ann)
        comment = await comment_service.create(db, ann, trip.id, {"text": "Mine"})

        with pytest.raises(ForbiddenError):
            await comment_service.update(db, bob, comment.id, {"text": ""})
        with pytest.raises(ForbiddenError):
            await comment_service.delete(db, bob, comment.id)

    @pytest.mark.asyncio
    async def test_delete_removes_replies(self, db, make_user, make_trip):
        ann = await make_user()
        bob = await make_user()
        trip = await make_trip(ann)
        parent = await comment_service.create(db, ann, trip.id, {"text": "Parent"})
        await comment_service.create(
            db, bob, trip.id, {"text": "Reply", "parentCommentId": str(parent.id)}
        )

        await comment_service.delete(db, ann, parent.id)
        db.expunge_all()

        remaining = (await db.execute(select(func.count()).select_from(Comment))).scalar_one()
        assert remaining == 0


class TestCommentLikes:
    @pytest.mark.asyncio
    async def test_toggle(self, db, make_user, make_trip):
        ann = await make_user()
        bob = await make_user()
        trip = await make_trip(ann)
        comment = await comment_service.create(db, ann, trip.id, {"text": "Like me"})

        liked = await comment_service.toggle_like(db, bob, comment.id)
        assert liked.liked is True and liked.likes == [bob.id]

        unliked = await comment_service.toggle_like(db, bob, comment.id)
        assert unliked.liked is False and unliked.like_count == 0

    @pytest.mark.asyncio
    async def test_unknown_comment(self, db, make_user):
        ann = await make_user()
        with pytest.raises(NotFoundError):
            await comment_service.toggle_like(db, ann, uuid.uuid4())
