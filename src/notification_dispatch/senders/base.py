"""Base protocol for email senders."""

from __future__ import annotations

from ..models import ResolvedMessage


class EmailSenderBase:
    """Deliver resolved messages.

    Implementations receive their default sender address at construction
    time; it is used when a message does not name a sender.
    """

    def __init__(self, default_sender: str | None = None):
        self.default_sender = default_sender

    async def send(self, message: ResolvedMessage) -> str:
        """Deliver ``message`` and return the backend's delivery identifier.

        Raises:
            SendError: If the backend refuses or fails to deliver.
        """
        raise NotImplementedError

    async def close(self) -> None:
        return None
