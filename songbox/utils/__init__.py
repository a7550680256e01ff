"""
Small helpers for formatting and filesystem paths.
"""
