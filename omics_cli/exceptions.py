class ConfigError(ValueError):
    """Raised for unusable settings, detected before any input is read."""

    pass
