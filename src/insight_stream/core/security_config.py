"""Security configuration constants.

This module centralizes:
- Keys that should be sanitized from logs
- Which error response fields each environment may expose
"""

# Keys redacted from structured log data. Analysis payloads can carry OAuth
# material forwarded by the dashboard, so credential-like names are covered.
SENSITIVE_KEYS: set[str] = {
    # Authentication & Authorization
    "password",
    "secret",
    "token",
    "access_token",
    "refresh_token",
    "authorization",
    "api_key",
    "apikey",
    "jwt",
    "cookie",
    "set-cookie",
    "x-api-key",
    "bearer",
    "client_secret",
    # Personal data
    "email",
    "phone",
}

# In production, error responses only contain these fields
PRODUCTION_ERROR_FIELDS: set[str] = {
    "correlation_id",
    "type",
}

DEVELOPMENT_ERROR_FIELDS: set[str] = PRODUCTION_ERROR_FIELDS | {
    "details",
    "traceback",
    "exception_type",
    "validation_errors",
}


def get_allowed_error_fields(environment: str) -> set[str]:
    """Get allowed error response fields based on environment.

    Args:
        environment: The application environment (production, development, etc.)

    Returns:
        Set of allowed field names for error responses
    """
    if environment == "production":
        return PRODUCTION_ERROR_FIELDS.copy()
    return DEVELOPMENT_ERROR_FIELDS.copy()


def is_sensitive_key(key: str) -> bool:
    """Check if a key should be considered sensitive and redacted."""
    key_lower = key.lower()
    return any(sensitive in key_lower for sensitive in SENSITIVE_KEYS)
