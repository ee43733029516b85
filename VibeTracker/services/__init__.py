"""
Domain services: streaks, levels, badges, XP rewards and the session command service.
"""
