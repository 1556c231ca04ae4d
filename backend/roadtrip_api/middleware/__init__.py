# Middleware package init
"""
Road Trip Planner Backend — Middleware Package
===============================================

What:  Cross-cutting concerns applied to every request.
Why:   Middleware handles functionality needed across all routes without
       duplicating code in each route handler.

Middleware Chain (order matters!):
    Request → [Request ID] → [Logging] → [Rate Limit] → [CORS/GZip] → Route Handler
                                                                        ↳ auth dependency

    1. Request ID: correlation ID is set before anything is logged
    2. Logging:    every request is logged, including rate-limited ones
    3. Rate Limit: rejects over-limit clients before any route work
    4. Auth:       not a middleware; the get_current_user dependency raises
                   AuthError (401) before a protected handler body runs

    Starlette runs the LAST-added middleware first, so main.py adds them in
    reverse order.
"""
