"""
POA Validator — compliance checks for scanned Powers of Attorney.

Architecture: Upload → Text extraction (PDF layer → PDF OCR → image OCR) → Rule checks → Verdict
Philosophy:  Extract what we can, report how sure we are, never guess a pass.
"""

__version__ = "1.0.0"
