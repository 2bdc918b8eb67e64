"""Certification document OCR pipeline.

Turns photographed or scanned receipts and certificates (images or PDFs)
into structured candidate fields using OpenCV preprocessing, Tesseract OCR
and rule-based extraction, with catalog matching of certification names.
"""

__version__ = "1.0.0"
