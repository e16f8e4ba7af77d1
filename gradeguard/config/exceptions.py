class PolicyStoreError(Exception):
    """Raised when a policy store cannot be read or written."""
