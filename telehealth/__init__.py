"""
Telehealth backend: encrypted, versioned medical record storage.
"""
__version__ = "1.0.0"
