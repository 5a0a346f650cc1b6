"""
Tracing and request logging setup.
"""
