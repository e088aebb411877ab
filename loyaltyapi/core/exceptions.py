from fastapi import HTTPException, status
from typing import Optional, Dict, Any

class BaseAPIException(HTTPException):
    """Base exception for API errors"""
    def __init__(
        self,
        status_code: int,
        error_code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.error_code = error_code
        self.message = message
        self.details = details or {}

        super().__init__(
            status_code=status_code,
            detail={
                "success": False,
                "error": {
                    "code": error_code,
                    "message": message,
                    "details": self.details
                }
            }
        )

    def __str__(self) -> str:  # Ensure str(e) returns the human message
        return self.message

class AuthenticationError(BaseAPIException):
    """Authentication related errors"""
    def __init__(self, message: str = "Authentication failed", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code="AUTH_001",
            message=message,
            details=details
        )

class ValidationError(BaseAPIException):
    """Validation errors"""
    def __init__(
        self,
        message: str = "Validation failed",
        details: Optional[Dict] = None,
        error_code: str = "VALIDATION_001",
    ):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code=error_code,
            message=message,
            details=details
        )

class BadRequestError(BaseAPIException):
    """Malformed request errors"""
    def __init__(self, message: str = "Invalid request format", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="REQUEST_001",
            message=message,
            details=details
        )

class ConflictError(BaseAPIException):
    """Resource conflict errors"""
    def __init__(
        self,
        message: str = "Resource conflict",
        details: Optional[Dict] = None,
        error_code: str = "CONFLICT_001",
    ):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error_code=error_code,
            message=message,
            details=details
        )

class InternalServerError(BaseAPIException):
    """Internal server errors"""
    def __init__(self, message: str = "Internal server error", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="INTERNAL_001",
            message=message,
            details=details
        )

class InsufficientBalanceError(BaseAPIException):
    """Insufficient balance errors"""
    def __init__(self, message: str = "Insufficient funds", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            error_code="BALANCE_001",
            message=message,
            details=details
        )

# ============================================================================
# Order / ledger errors
# ============================================================================

class InvalidOrderNumberError(ValidationError):
    """Order number failed the Luhn checksum"""
    def __init__(self, number: str):
        super().__init__(
            message="invalid order number format",
            details={"number": number},
            error_code="ORDER_001",
        )

class OrderNumberConflictError(ConflictError):
    """Order number already uploaded by another user"""
    def __init__(self, number: str):
        super().__init__(
            message="order number already exists for another user",
            details={"number": number},
            error_code="ORDER_002",
        )

class InvalidUserIdError(ValidationError):
    def __init__(self, user_id: int):
        super().__init__(
            message="user id must be positive",
            details={"user_id": user_id},
            error_code="LEDGER_001",
        )

class MissingNumberError(ValidationError):
    def __init__(self):
        super().__init__(message="order number is required", error_code="LEDGER_002")

class NonPositiveAmountError(ValidationError):
    def __init__(self, field: str, amount: Any):
        super().__init__(
            message=f"{field} amount must be positive",
            details={field: str(amount)},
            error_code="LEDGER_003",
        )

class NegativeAccrualError(ValidationError):
    def __init__(self, accrual: Any):
        super().__init__(
            message="accrual cannot be negative",
            details={"accrual": str(accrual)},
            error_code="LEDGER_004",
        )

class InvalidCarriesAccrualError(ValidationError):
    def __init__(self, accrual: Any):
        super().__init__(
            message="invalid order cannot carry accrual",
            details={"accrual": str(accrual)},
            error_code="LEDGER_005",
        )

class TerminalStateViolationError(ConflictError):
    """Order already reached a terminal status"""
    def __init__(self, current_status: str, requested_status: str):
        super().__init__(
            message="cannot change status of processed order",
            details={"current": current_status, "requested": requested_status},
            error_code="LEDGER_006",
        )

# ============================================================================
# Service layer (never surfaced over HTTP)
# ============================================================================

class ServiceException(Exception):
    """Base exception for service layer errors"""
    pass

class OrderNotFoundError(ServiceException):
    def __init__(self, order_id: int):
        self.order_id = order_id
        super().__init__(f"order not found: {order_id}")

class UnknownAccrualStatusError(ServiceException):
    def __init__(self, accrual_status: str):
        self.accrual_status = accrual_status
        super().__init__(f"unknown accrual status: {accrual_status}")

class DuplicateOrderNumberError(ServiceException):
    """Unique constraint on the order number was hit by a concurrent upload"""
    def __init__(self, number: str):
        self.number = number
        super().__init__(f"order number already stored: {number}")

class OrderAlreadyProcessedError(ServiceException):
    """Another dispatcher stored PROCESSED for this order first"""
    def __init__(self, order_id: int):
        self.order_id = order_id
        super().__init__(f"order already processed: {order_id}")
