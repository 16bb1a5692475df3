"""Delivery state machine for messages."""

from ..models import MessageStatus
from ..state_machine import StateMachine

# Forward-only. Later states may be reached directly when an intermediate
# acknowledgment is lost or arrives out of order.
DELIVERY_TRANSITIONS: dict[MessageStatus, frozenset[MessageStatus]] = {
    MessageStatus.SENDING: frozenset(
        {
            MessageStatus.SENT,
            MessageStatus.DELIVERED,
            MessageStatus.READ,
            MessageStatus.FAILED,
        }
    ),
    MessageStatus.SENT: frozenset({MessageStatus.DELIVERED, MessageStatus.READ}),
    MessageStatus.DELIVERED: frozenset({MessageStatus.READ}),
    MessageStatus.READ: frozenset(),
    MessageStatus.FAILED: frozenset(),
}


class DeliveryStateMachine(StateMachine[MessageStatus]):
    """sending -> sent -> delivered -> read, or sending -> failed."""

    def __init__(self) -> None:
        super().__init__("message", DELIVERY_TRANSITIONS)
