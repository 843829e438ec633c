"""Exceptions raised by the mapping engine."""


class MappingError(Exception):
    """Base exception for mapping errors."""
    pass


class PathError(MappingError):
    """Path expression is malformed."""
    pass


class ConfigImportError(MappingError):
    """Mapping configuration could not be loaded."""
    pass


class SourceLoadError(MappingError):
    """Source document could not be fetched or parsed."""
    pass


class ExpressionError(MappingError):
    """Custom expression is not allowed or failed to evaluate."""
    pass
