"""Financial document field extraction engine.

Rebuilds positioned text lines from page glyph runs, resolves pay and
period dates, applies user-authored extraction rules with positional
provenance, and classifies payslip and bank statement content.
"""

__version__ = "0.3.0"
