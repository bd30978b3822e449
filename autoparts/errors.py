"""Exceptions raised by the storefront and rendered as JSON by the app's error handlers."""


class StorefrontError(Exception):
    """Base exception for all storefront errors."""

    status_code = 500
    message = "Request failed"

    def __init__(self, message=None):
        self.message = message or self.message
        super().__init__(self.message)

    def to_dict(self):
        return {"error": self.message}


class ValidationError(StorefrontError):
    """Raised when a payload is malformed or missing fields."""

    status_code = 400
    message = "Validation error"

    def __init__(self, details=None, message=None):
        self.details = list(details or [])
        super().__init__(message)

    def to_dict(self):
        return {"error": self.message, "details": self.details}


class NotFoundError(StorefrontError):
    """Raised when a part, cart item, order or user does not exist."""

    status_code = 404

    def __init__(self, entity, entity_id=None):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found")


class InsufficientStockError(StorefrontError):
    """Raised when the requested quantity exceeds available stock."""

    status_code = 400

    def __init__(self, part_name, available, requested, message=None):
        self.part_name = part_name
        self.available = available
        self.requested = requested
        super().__init__(message or f"Insufficient stock for {part_name}")

    def to_dict(self):
        return {
            "error": self.message,
            "part_name": self.part_name,
            "available": self.available,
            "requested": self.requested,
        }


class EmptyCartError(StorefrontError):
    """Raised when checkout is attempted with no cart lines."""

    status_code = 400
    message = "Cart is empty"


class UnauthorizedError(StorefrontError):
    """Raised when no valid identity accompanies a request that needs one."""

    status_code = 401
    message = "Authentication required"


class ForbiddenError(StorefrontError):
    """Raised when the requester does not own the resource or lacks the admin role."""

    status_code = 403
    message = "Access denied"


class InvalidStateTransitionError(StorefrontError):
    """Raised when an order status change violates the order state machine."""

    status_code = 400

    def __init__(self, current, target, message=None):
        self.current = current
        self.target = target
        super().__init__(message or f"Order cannot move from {current} to {target}")

    def to_dict(self):
        return {"error": self.message, "current_status": self.current, "target_status": self.target}


class StorageError(StorefrontError):
    """Raised (or rendered) when the store is unavailable or rejects a write."""

    status_code = 503
    message = "The service is temporarily unavailable, please try again later"
