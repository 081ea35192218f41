"""API middleware package.

Manifesto:
    Cross-cutting concerns (request correlation, timing, error mapping)
    belong in middleware so the routers stay focused on dispatching
    procedures.

Tags:
    proclayer, api, middleware, cross-cutting
"""
