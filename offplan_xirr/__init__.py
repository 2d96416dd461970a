"""
Off-plan property XIRR calculator.
"""

__version__ = "0.1.0"
