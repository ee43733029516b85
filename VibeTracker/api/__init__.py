"""
HTTP resources for VibeTracker.
"""
