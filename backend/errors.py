# backend/errors.py
from enum import Enum


class ErrorType(Enum):
    NOT_FOUND = "not_found"
    DUPLICATE_KEY = "duplicate_key"
    REFERENTIAL_CONFLICT = "referential_conflict"
    INSUFFICIENT_STOCK = "insufficient_stock"
    COUPON_NOT_FOUND = "coupon_not_found"
    COUPON_EXPIRED = "coupon_expired"
    COUPON_MINIMUM_NOT_MET = "coupon_minimum_not_met"
    COUPON_LIMIT_REACHED = "coupon_limit_reached"
    COUPON_USER_LIMIT_REACHED = "coupon_user_limit_reached"
    COUPON_FIRST_ORDER_ONLY = "coupon_first_order_only"
    COUPON_NOT_APPLICABLE = "coupon_not_applicable"
    FORBIDDEN = "forbidden"
    VALIDATION_ERROR = "validation_error"
    STORAGE_UNAVAILABLE = "storage_unavailable"


# Map error types to HTTP status codes
ERROR_STATUS_MAP = {
    ErrorType.NOT_FOUND: 404,
    ErrorType.DUPLICATE_KEY: 409,
    ErrorType.REFERENTIAL_CONFLICT: 409,
    ErrorType.INSUFFICIENT_STOCK: 409,
    ErrorType.COUPON_NOT_FOUND: 404,
    ErrorType.COUPON_EXPIRED: 400,
    ErrorType.COUPON_MINIMUM_NOT_MET: 400,
    ErrorType.COUPON_LIMIT_REACHED: 409,
    ErrorType.COUPON_USER_LIMIT_REACHED: 409,
    ErrorType.COUPON_FIRST_ORDER_ONLY: 400,
    ErrorType.COUPON_NOT_APPLICABLE: 400,
    ErrorType.FORBIDDEN: 403,
    ErrorType.VALIDATION_ERROR: 422,
    ErrorType.STORAGE_UNAVAILABLE: 503,
}
