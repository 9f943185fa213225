"""
Askbase HTTP surface.

Run with ``askbase-server`` or ``python -m askbase.server.app``.
"""
