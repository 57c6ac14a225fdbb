"""Routing: path patterns, route entries, and the ordered route registry.

Entries are registered during setup and snapshotted into an immutable
tuple when the app freezes.
"""
