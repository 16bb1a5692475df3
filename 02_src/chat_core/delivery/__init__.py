"""Delivery module."""

from .state_machine import DELIVERY_TRANSITIONS, DeliveryStateMachine

__all__ = ["DELIVERY_TRANSITIONS", "DeliveryStateMachine"]
