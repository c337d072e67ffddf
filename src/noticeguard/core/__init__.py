"""Core utilities shared across noticeguard."""
