"""Wire schemas shared by the NotifyHub server and client."""

__version__ = "0.1.0"
