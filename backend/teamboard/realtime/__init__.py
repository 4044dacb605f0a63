from teamboard.realtime.hub import Connection, RealtimeHub

__all__ = ["Connection", "RealtimeHub"]
