"""
CLI commands for noticeguard.
"""
