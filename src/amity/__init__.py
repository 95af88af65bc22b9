"""Amity: a friendship graph served over a request/response message bus.

Callers publish operations with a correlation key and wait on a reply slot;
dispatchers execute them against an authoritative graph store and keep a
neighbor cache consistent with it.
"""

__version__ = "0.1.0"
