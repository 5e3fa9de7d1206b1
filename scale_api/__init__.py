"""
Scale subscription and usage metering API
"""

__version__ = "1.0.0"
