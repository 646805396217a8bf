"""
Credscore — Credibility score calculation engine
"""
__version__ = "1.0.0"
