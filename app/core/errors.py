"""Typed failures raised by the service layer.

Every service operation reports failure through one of these classes. The
HTTP layer turns them into an ``ErrorResponse`` (see ``app.main``), so none
of them reaches the client as an unhandled server error.
"""
from typing import Optional


class ServiceError(Exception):
	status_code: int = 400
	error_code: str = "service_error"
	default_message: str = "Request could not be processed"

	def __init__(self, message: Optional[str] = None, details: Optional[dict] = None):
		self.message = message or self.default_message
		self.details = details
		super().__init__(self.message)


class ValidationError(ServiceError):
	status_code = 400
	error_code = "validation_error"
	default_message = "Invalid input"


class NotFound(ServiceError):
	# Also used when the row exists but belongs to someone else.
	status_code = 404
	error_code = "not_found"
	default_message = "Resource not found"


class Forbidden(ServiceError):
	status_code = 403
	error_code = "forbidden"
	default_message = "You are not allowed to perform this action"


class DuplicateReview(ServiceError):
	status_code = 409
	error_code = "duplicate_review"
	default_message = "You have already reviewed this tour"


class DuplicateEmail(ServiceError):
	status_code = 409
	error_code = "duplicate_email"
	default_message = "User with this email already exists"


class CapacityExceeded(ServiceError):
	status_code = 400
	error_code = "capacity_exceeded"
	default_message = "Number of people exceeds the maximum group size for this tour"


class TourInactive(ServiceError):
	status_code = 400
	error_code = "tour_inactive"
	default_message = "This tour is no longer available"


class StorageError(ServiceError):
	status_code = 500
	error_code = "storage_error"
	default_message = "Unexpected storage failure"
