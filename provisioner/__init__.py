"""
Workstation Provisioner — bring a fresh Mac to a known-good state.

Safe to re-run at any point: every step checks current state before
changing anything, and only the missing pieces are installed.
"""

__version__ = "0.1.0"
