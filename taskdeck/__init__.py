"""
taskdeck - operator console for a task-orchestration service
"""

__version__ = "0.3.0"
