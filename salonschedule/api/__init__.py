"""
Framework-neutral request adapters.
"""

from .available_slots import ApiResponse, AvailableSlotsEndpoint, error_response

__all__ = ["ApiResponse", "AvailableSlotsEndpoint", "error_response"]
