class RegistryError(Exception):
    """Base error for all user-facing registry exceptions."""

    code = "registry_error"


class ConfigurationError(RegistryError):
    """Raised when configuration is invalid or incomplete."""

    code = "configuration_error"


class ValidationError(RegistryError):
    """Raised when required input is missing or malformed."""

    code = "validation_error"


class NotFoundError(RegistryError):
    """Raised when a collection or asset cannot be resolved."""

    code = "not_found"


class UpstreamError(RegistryError):
    """Raised when the remote asset store fails."""

    code = "upstream_error"


class StorageError(RegistryError):
    """Raised when a local index file cannot be written."""

    code = "storage_error"
