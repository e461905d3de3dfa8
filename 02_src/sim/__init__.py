"""Simulated chat participants for the demo service."""

from .sim import ISim, Sim

__all__ = ["ISim", "Sim"]
