"""Asyncio building blocks for TURN relays: allocations, credentials and client bookkeeping."""

__version__ = "0.1.0"