"""
Error taxonomy

Every error raised by the service layer carries its HTTP status and a
human-readable message; the exception handler in main.py renders it as
{"message": ...}.
"""
from fastapi import status


class AppError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "An internal error occurred."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthenticationError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class AuthorizationError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class InvalidDocumentType(ValidationError):
    default_message = "Invalid document type for your role"


class MissingFile(ValidationError):
    default_message = "No file uploaded"


class UnsupportedFile(ValidationError):
    default_message = "Invalid file type. Only PDF, JPG, and PNG up to 5 MB are allowed."


class InvalidInstallment(ValidationError):
    default_message = "Invalid installment number"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class BranchNotFound(NotFoundError):
    default_message = "Branch not found"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Already exists"


class BusinessRuleError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST


class PaymentNotSuccessful(BusinessRuleError):
    default_message = "Payment not successful"


class GatewayError(AppError):
    """Payment processor unreachable or errored. The client may retry manually."""

    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Payment service unavailable. Please retry."
