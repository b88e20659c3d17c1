"""Data models for drive state."""

from .state import DriveSnapshot, DriveState, ProcessedStatus
