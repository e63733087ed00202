"""
salonschedule - appointment availability for multi-tenant salons.
"""

__version__ = "0.1.0"
