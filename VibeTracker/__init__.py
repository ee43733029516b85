"""
VibeTracker - activity session lifecycle and gamification reward engine.
"""

__version__ = '1.0.0'
