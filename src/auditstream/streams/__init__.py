from auditstream.streams.broadcaster import EventBroadcaster
from auditstream.streams.events import ServerSentEvent, StreamChannel

__all__ = ["EventBroadcaster", "ServerSentEvent", "StreamChannel"]
