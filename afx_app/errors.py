class InvalidArgument(ValueError):
    """Rejected operation: the request is malformed and state was left unchanged."""
