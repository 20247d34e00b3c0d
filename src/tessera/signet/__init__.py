"""Signet - signing identity for harness sessions."""
