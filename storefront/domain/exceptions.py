class DomainException(Exception):
    reason = "domain_error"


class EmptyCartError(DomainException):
    reason = "empty_cart"


class PaymentGatewayError(DomainException):
    reason = "payment_gateway_error"


class SignatureMismatchError(DomainException):
    reason = "signature_mismatch"


class AlreadyFinalizedError(DomainException):
    reason = "already_finalized"


class NotFoundError(DomainException):
    reason = "not_found"


class OrderNotFoundError(NotFoundError):
    pass


class ProductNotFoundError(NotFoundError):
    pass


class PersistenceError(DomainException):
    reason = "persistence_error"


class OutOfStockError(DomainException):
    reason = "out_of_stock"

    def __init__(self, product_id: str, available: int):
        self.product_id = product_id
        self.available = available
        super().__init__(f"Product {product_id} is out of stock. Available: {available}")


class InvalidQuantityError(DomainException):
    reason = "invalid_quantity"


class EmailAlreadyRegisteredError(DomainException):
    reason = "email_already_registered"


class UserNotFoundError(NotFoundError):
    pass
