"""
SGC Admin - terminal client for the SGC Education administration API
"""

__version__ = "1.0.0"
