# Services package init
"""
Road Trip Planner Backend — Services Layer
===========================================

What:  Business logic between routes (HTTP) and the database / upstream APIs.
Why:   Routes handle HTTP; services own validation, ownership, toggles,
       pagination and caching, and can be tested without a server.

Service Inventory:
    Credentials & resources
    - security:        bcrypt hashing, JWT issue/verify
    - AuthService:     register / login / token → principal
    - UserService:     users list, profiles, self-update/delete, follow toggle
    - TripService:     trips CRUD, search, likes/saves toggles, image uploads
    - CommentService:  threaded comments and comment likes
    - ReviewService:   one-per-user reviews, rating stats, helpful votes
    - ImageStorage:    local (aiofiles) or Cloudinary image storage

    External data adapters (read-through TTL caches over httpx)
    - WeatherService:    current conditions and forecasts
    - PlacesService:     geocode + nearby points of interest
    - DirectionsService: geocode both ends + driving directions
"""
