"""
noticeguard - admin notice suppression with allowlist matching.
"""

__version__ = "1.0.0"
