"""Time-sliced task scheduler, small OS abstraction and queued UDP packet data link."""

__version__ = "0.1.0"
__all__ = ["config", "osal", "datalink", "maestro"]