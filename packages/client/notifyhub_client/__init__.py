"""
NotifyHub client

Talks to the NotifyHub server over HTTP and the push channel, and keeps a
per-user notification feed reconciled from snapshots and pushed deltas.
"""

__version__ = "0.1.0"
