"""Custom exceptions for the order desk application."""

class SaasError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        rv['code'] = self.code
        return rv

    @property
    def code(self):
        """Stable machine-readable error code (class name)."""
        return type(self).__name__

class BusinessLogicError(SaasError):
    """Exception raised for business logic violations."""
    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message, status_code, payload)

class ValidationError(BusinessLogicError):
    """Raised when an input value is missing or malformed."""

class NotFoundError(SaasError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)

class UnauthorizedError(SaasError):
    """Raised when a user lacks permission for an action."""
    def __init__(self, message="Unauthorized access"):
        super().__init__(message, 403)


# --- Catalog -----------------------------------------------------------

class ProductNotFound(NotFoundError):
    """No catalog product matches the given id or reference."""
    def __init__(self, reference=None, message=None):
        self.reference = reference
        super().__init__(message or f"Product not found: {reference}", payload={'reference': reference})

class AliasConflict(BusinessLogicError):
    """A client reference is already bound to a different product."""
    def __init__(self, client_ref, existing_product_id, existing_code=None):
        self.client_ref = client_ref
        self.existing_product_id = existing_product_id
        message = f'Reference "{client_ref}" is already associated with another product'
        super().__init__(message, status_code=409, payload={
            'clientRef': client_ref,
            'existingProduct': {'id': existing_product_id, 'code': existing_code},
        })

class DuplicateProductCode(BusinessLogicError):
    """Product codes are unique per tenant."""
    def __init__(self, code):
        super().__init__(f'Product code "{code}" already exists', status_code=409, payload={'productCode': code})

class ProductInUse(BusinessLogicError):
    """Products referenced by order items cannot be deleted; deactivate them instead."""
    def __init__(self, product_id):
        super().__init__(f"Product {product_id} is referenced by orders and cannot be deleted",
                         status_code=409, payload={'productId': product_id})

class DiscountNotFound(NotFoundError):
    def __init__(self, discount_id):
        super().__init__(f"Discount tier {discount_id} not found", payload={'discountId': discount_id})

class DiscountInUse(BusinessLogicError):
    """Discount tiers referenced by orders are immutable."""
    def __init__(self, discount_id):
        super().__init__(f"Discount tier {discount_id} is referenced by orders and cannot change",
                         status_code=409, payload={'discountId': discount_id})


# --- Orders ------------------------------------------------------------

class ClientNotFound(NotFoundError):
    def __init__(self, client_id):
        super().__init__(f"Client {client_id} not found", payload={'clientId': client_id})

class RepresentativeNotFound(NotFoundError):
    """The user is not an active member of the tenant."""
    def __init__(self, user_id):
        super().__init__(f"Representative {user_id} not found", payload={'representativeId': user_id})

class OrderNotFound(NotFoundError):
    def __init__(self, order_id):
        super().__init__(f"Order {order_id} not found", payload={'orderId': order_id})

class ItemNotFound(NotFoundError):
    def __init__(self, item_id):
        super().__init__(f"Order item {item_id} not found", payload={'itemId': item_id})

class InvalidQuantity(BusinessLogicError):
    """Quantities must be positive integers."""
    def __init__(self, quantity):
        super().__init__(f"Quantity must be greater than 0 (got {quantity})", payload={'quantity': str(quantity)})

class InvalidOrderState(BusinessLogicError):
    """The order status forbids the requested mutation or transition."""
    def __init__(self, message, status=None):
        super().__init__(message, status_code=409, payload={'orderStatus': status})

class OrderValidationError(BusinessLogicError):
    """One or more rows of an item batch were rejected."""
    def __init__(self, row_errors):
        self.row_errors = list(row_errors)
        super().__init__(
            f"{len(self.row_errors)} item(s) rejected",
            payload={'rejected': [e.to_dict() for e in self.row_errors]},
        )

class ConcurrentModification(BusinessLogicError):
    """The order changed underneath this request (stale version)."""
    def __init__(self, order_id):
        super().__init__(f"Order {order_id} was modified concurrently, reload and retry",
                         status_code=409, payload={'orderId': order_id})


# --- Infrastructure ----------------------------------------------------

class PersistenceFailure(SaasError):
    """A repository-level fault; the transaction was rolled back."""
    def __init__(self, message="Database operation failed", original=None):
        self.original = original
        super().__init__(message, 500)
