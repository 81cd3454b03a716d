"""MRZ capture pipeline.

Turns camera frames and photos of passports and ID cards into validated
machine-readable-zone text: orientation correction, fixed-ratio document
and MRZ band cropping, binarization, Tesseract OCR, and line validation.
"""
