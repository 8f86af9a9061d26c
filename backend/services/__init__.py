"""
Services package - Business logic layer.

This package contains all business logic services that operate on Django models
but are decoupled from the HTTP/WebSocket layer.

Modules:
    - routing: Polyline codec, route composition and waypoint ordering
    - matching: Detour evaluation and driver proximity checks
    - ride_management: Request/Proposal/Ride lifecycle and queries
"""
