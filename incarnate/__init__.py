"""Agentic character portrait, turnaround video and 3D model pipeline."""

__version__ = "0.1.0"
