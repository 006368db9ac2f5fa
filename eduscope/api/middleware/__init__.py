"""
HTTP middleware and route guards.
"""
