# Routes package init
"""
Inkpost Backend: API Routes Package
=====================================

Route Inventory:
    - users.py:   POST /users/register, POST /users/login,
                  GET /users/auth, POST /users/logout
    - posts.py:   POST /posts, GET /posts, GET /posts/tags,
                  GET/PATCH/DELETE /posts/{identifier}
    - health.py:  GET /health
    - deps.py:    current-user and admin dependencies

Design Principle:
    Routes are THIN: they extract request data, call a service and pick the
    status code. Business rules live in services.
"""
