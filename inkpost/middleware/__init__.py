# Middleware package init
"""
Inkpost Backend: Middleware Package
=====================================

Middleware Chain (request order):
    Request → [Login Throttle] → [Request ID] → [Logging] → [GZip] → [CORS] → Route

    - Login Throttle first: reject credential stuffing before any work
    - Request ID next: every later log line can carry the correlation id
    - Logging: records status and duration once the response exists
"""
