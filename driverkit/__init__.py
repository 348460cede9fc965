"""
driverkit: driver package file placement, installation and verification.
"""

__version__ = "0.1.0"
