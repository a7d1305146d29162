"""Game domain services: rules, room registry, room state machine and timers.

This package contains pure(ish) domain logic that is driven by the socket
handlers, keeping transport concerns separated from core game mechanics.
Import the submodules directly (``services.games.service`` etc.).
"""
