"""
MediGuide: medicine donation, disposal and assistant backend.
"""

__version__ = "1.0.0"
