"""
Endpoint interface.

An endpoint is one live bidirectional channel as seen by the relay core.
Transports implement deliver() as a non-blocking hand-off.
"""

import uuid
from abc import ABC, abstractmethod
from typing import Optional


class Endpoint(ABC):
    """
    Abstract channel endpoint.

    Implementations must guarantee:
    - deliver() never blocks on the network (queue the payload instead)
    - payloads handed to deliver() reach the peer in call order
    - a synchronous exception from deliver() means the endpoint is unusable
    """

    def __init__(self, endpoint_id: Optional[str] = None) -> None:
        self.endpoint_id = endpoint_id or uuid.uuid4().hex

    @abstractmethod
    def deliver(self, payload: str) -> None:
        """
        Hand a payload to this endpoint.

        Args:
            payload: Serialized event record

        Raises:
            Exception: Any exception marks the endpoint as failed
        """
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.endpoint_id})"
