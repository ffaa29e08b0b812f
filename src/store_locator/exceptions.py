"""Domain-specific exceptions for the store locator pipeline.

This module defines custom exceptions that are part of the public API.
All exceptions inherit from StoreLocatorError for easy catching.
"""


class StoreLocatorError(Exception):
    """Base exception for all store locator errors.

    Users can catch this exception to handle any error raised by the
    pipeline stages, the sheet fetch, or the geocoding collaborators.
    """

    pass


class ConfigError(StoreLocatorError):
    """Raised when there is a configuration error.

    This exception is raised when:
    - Required configuration is missing (sheet URL, API key)
    - Invalid configuration values are provided
    - Junk rule or catalog files cannot be loaded or parsed
    """

    pass


class DataQualityError(StoreLocatorError):
    """Raised when an input table cannot be processed.

    This exception is raised when:
    - Required columns are missing from an input file
    - An input file cannot be found or parsed
    """

    pass


class ETLError(StoreLocatorError):
    """Raised when a pipeline stage fails."""

    pass


class ExtractionError(ETLError):
    """Raised when fetching the published sheet fails.

    This exception is raised when:
    - Network connection to the sheet host fails
    - The sheet host returns a non-2xx status
    """

    pass


class GeocodingError(ETLError):
    """Raised when a geocoding or place lookup request cannot be made."""

    pass
