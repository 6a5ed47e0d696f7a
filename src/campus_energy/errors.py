class ValidationError(ValueError):
    """A request is missing a required lookup key or carries a malformed one."""
