"""
Generate Beef FFI bindings for C libraries from their headers.
"""

__version__ = "0.1.0"
