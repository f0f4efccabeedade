"""
callguard - availability and account-standing engine for sales-call scheduling.
"""

__version__ = "0.1.0"
