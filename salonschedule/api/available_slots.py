"""
Adapter for ``GET /schedule/available-slots``.

Framework-neutral: it receives the raw query mapping plus the tenant from the
auth context and returns a status code with a JSON-ready body. Any web
framework can mount it by forwarding those two values.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from ..domain.exceptions import (
    AuthenticationError,
    RepositoryError,
    ScheduleError,
    ValidationError,
)
from ..schemas import AvailableSlotsQuery
from ..services.availability import AvailabilityRequest, AvailabilityService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApiResponse:
    status_code: int
    body: Dict[str, Any]


def error_response(error: ScheduleError) -> ApiResponse:
    """
    Shape an application error for the caller.

    Internal errors only expose their generic public message; validation
    errors list each offending field.
    """
    message = error.public_message if isinstance(error, RepositoryError) else error.message
    body: Dict[str, Any] = {"success": False, "error": message}
    if isinstance(error, ValidationError):
        body["details"] = [
            {"field": field_error.field, "message": field_error.message}
            for field_error in error.errors
        ]
    return ApiResponse(status_code=error.status_code, body=body)


class AvailableSlotsEndpoint:
    """Validates query parameters, runs the availability service, shapes the response."""

    def __init__(self, service: AvailabilityService) -> None:
        self._service = service

    async def handle(
        self,
        query: Mapping[str, Any],
        auth_tenant_id: Optional[str] = None,
    ) -> ApiResponse:
        """
        Serve one availability request.

        Args:
            query: Raw query parameters (``date``, ``staffId``,
                ``serviceDurationMinutes``, ``bufferMinutes``, ``tenantId``)
            auth_tenant_id: Tenant of the authenticated caller, if any

        Returns:
            ApiResponse with ``{success, date, timezone, slots}`` on success
        """
        try:
            params = AvailableSlotsQuery.parse_query(query)
            tenant_id = params.tenant_id or auth_tenant_id
            if not tenant_id:
                raise AuthenticationError()

            availability = await self._service.get_available_slots(
                AvailabilityRequest(
                    tenant_id=tenant_id,
                    day=params.requested_date,
                    service_duration_minutes=params.service_duration_minutes,
                    buffer_minutes=params.buffer_minutes,
                    staff_id=params.staff_id,
                )
            )
        except RepositoryError as exc:
            logger.error("Error fetching available slots: %s", exc.message, exc_info=exc)
            return error_response(exc)
        except ScheduleError as exc:
            logger.debug("Rejected available-slots request: %s", exc.message)
            return error_response(exc)
        except Exception as exc:
            logger.exception("Unexpected error fetching available slots")
            return error_response(RepositoryError(str(exc)))

        return ApiResponse(status_code=200, body=availability.to_dict())
