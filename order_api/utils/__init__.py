"""
Utilities package for the Order API.
"""
