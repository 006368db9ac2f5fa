"""
EduScope Academic Portal - moderation, permission and audit core.
"""

__version__ = "1.0.0"
