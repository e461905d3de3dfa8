"""Tracker module."""

from .tracker import ITraceStore, ITracker, NullTracker, Tracker

__all__ = ["ITraceStore", "ITracker", "NullTracker", "Tracker"]
