# Services package init
"""
Inkpost Backend: Services Layer
=================================

What:  Business logic between routes (HTTP) and the database.
How:   Stateless singletons; every method receives the request's AsyncSession.

Service Inventory:
    - SlugTagManager: slug derivation/uniqueness and the tag lifecycle
    - PostService:    post CRUD built on SlugTagManager
    - UserService:    registration, login, token authentication
"""
