"""
Domain exceptions raised by services and translated to HTTP errors by the routers
"""


class ReadyMixError(Exception):
    """Base error carrying the HTTP status the API should answer with"""
    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(ReadyMixError):
    status_code = 400


class NotFoundError(ReadyMixError):
    status_code = 404


class InsufficientStockError(ReadyMixError):
    status_code = 400


class PaymentError(ReadyMixError):
    status_code = 402


class ConfigurationError(ReadyMixError):
    status_code = 500
