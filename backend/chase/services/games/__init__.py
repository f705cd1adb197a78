"""Game domain services: geometry, rooms, proximity, timers and the engine.

This package contains the session logic imported by the Socket.IO handlers
and HTTP routes, keeping transport concerns separated from core game
mechanics.
"""
