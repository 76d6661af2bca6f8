"""
Error taxonomy for PlantNet

Every domain failure carries the HTTP status it is surfaced with; main.py
renders them with a single exception handler.
"""


class MarketError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Unauthorized(MarketError):
    status_code = 401


class Forbidden(MarketError):
    status_code = 403


class NotFound(MarketError):
    status_code = 404


class Conflict(MarketError):
    status_code = 409


class Invalid(MarketError):
    status_code = 422


class PaymentFailed(MarketError):
    status_code = 502
