from typing import Protocol, runtime_checkable

from push_fanout.core.messages import MessageEnvelope


@runtime_checkable
class NotificationTransport(Protocol):
    """
    Port to a platform push gateway.
    send() returns the provider message id or raises TransportError(code, message).
    Implementations enforce their own per-call timeout and must be safe for concurrent use.
    """

    def is_available(self) -> bool: ...

    async def send(self, token: str, envelope: MessageEnvelope) -> str: ...
