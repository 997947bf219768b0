"""
ATABAI: NSBU to IFRS statement conversion.

Reads Uzbek national-standard (NSBU) Excel statements and renders IFRS
workbooks with live formulas.
"""

__version__ = "0.1.0"
