"""Core transport primitives (errors and sequence events).

Kept free of FastAPI and Redis concerns so it can be reused by the engine, API routes, and tests.
"""
