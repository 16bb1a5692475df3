"""Simulation helpers for demos and manual testing."""

from .backend import DEMO_CONTACTS, SimulatedSignaling
from .sim import ISim, Sim

__all__ = ["DEMO_CONTACTS", "ISim", "Sim", "SimulatedSignaling"]
