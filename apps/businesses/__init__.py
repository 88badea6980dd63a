"""
Business registry and per-request business context resolution.
"""
