def error_message(exc: BaseException) -> str:
    """Human-readable message for an error body; never empty."""
    return str(exc).strip() or type(exc).__name__
