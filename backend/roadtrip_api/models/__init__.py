"""
ORM models. Importing this package registers every table on `Base.metadata`
(Alembic's env.py and the test-suite's create_all rely on that).
"""

from roadtrip_api.models.comment import Comment, CommentLike
from roadtrip_api.models.review import Review, ReviewHelpfulVote
from roadtrip_api.models.road_trip import RoadTrip, RouteStop, TripLike, TripSave
from roadtrip_api.models.user import User, UserFollow

__all__ = [
    "Comment",
    "CommentLike",
    "Review",
    "ReviewHelpfulVote",
    "RoadTrip",
    "RouteStop",
    "TripLike",
    "TripSave",
    "User",
    "UserFollow",
]
