"""Visualization consumers of servo history."""

from .rerun_visualizer import RerunServoVisualizer

__all__ = ["RerunServoVisualizer"]
