"""
Road Trip Planner Backend — API Routes Package
===============================================

What:  HTTP route handlers that accept requests and return responses.
How:   One module per resource; each exposes a `router`.

Route Inventory:
    - auth.py:        /api/auth/register, /api/auth/login, /api/auth/profile
    - users.py:       /api/users, /api/users/profile/{id}, /api/users/{id}[/follow]
    - road_trips.py:  /api/roadtrips[...]  (CRUD, search, mine, saved, like, save)
    - comments.py:    /api/comments/{tripId|commentId}[/like]
    - reviews.py:     /api/reviews/trip/{tripId}, /api/reviews/{tripId|reviewId}[/helpful]
    - external.py:    /api/weather[/forecast], /api/places, /api/route
    - files.py:       /api/files/{path}
    - health.py:      /health

Design Principle:
    Routes are thin: extract request data, call a service, pick the status
    code. Business rules live in services.
"""
