"""
Tasker

Voice-to-task interpretation for the ADHD-friendly task manager:
turns a spoken transcript into task proposals and recurring calendar events.
"""

__version__ = "0.1.0"
