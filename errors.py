class ConfigurationError(RuntimeError):
    """Required setting or credential is missing or empty."""


class EncodingError(ValueError):
    """Input cannot be represented as a percent-encoded sequence."""
