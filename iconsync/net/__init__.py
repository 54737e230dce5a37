"""Networking helpers shared by outbound clients."""
