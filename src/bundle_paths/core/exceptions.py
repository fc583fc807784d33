"""
Exceptions raised by bundle path resolution and validation.

All exceptions inherit from PathResolverError for easy catching. Each one
carries the offending path (template or candidate) and a machine-readable
reason code so callers can log or branch on it without parsing messages.
"""


class PathResolverError(Exception):
    """Base exception for all path resolution errors."""

    def __init__(self, message: str, path: str = "", reason: str = ""):
        super().__init__(message)
        self.message = message
        self.path = path
        self.reason = reason


class ConfigVariableNotFoundError(PathResolverError):
    """A {config_source}:name reference names a variable the bundle config lacks."""

    def __init__(self, variable: str, available: list[str], path: str = ""):
        known = ", ".join(available) if available else "none"
        super().__init__(
            f"Config variable not found: {variable}. Available variables: {known}",
            path=path,
            reason="CONFIG_VARIABLE_NOT_FOUND",
        )
        self.variable = variable
        self.available = available


class UnresolvedVariableError(PathResolverError):
    """An unknown {...} token survived variable expansion."""

    def __init__(self, path: str):
        super().__init__(
            f"Unable to resolve variables in path: {path}. "
            "Variables may be undefined or contain typos.",
            path=path,
            reason="UNRESOLVED_VARIABLE",
        )


class CircularReferenceError(PathResolverError):
    """A config variable references itself, directly or transitively."""

    def __init__(self, chain: list[str], path: str = ""):
        super().__init__(
            f"Circular variable reference detected: {' -> '.join(chain)}",
            path=path,
            reason="CIRCULAR_REFERENCE",
        )
        self.chain = chain


class MaxIterationsExceededError(PathResolverError):
    """Expansion did not reach a fixed point within the iteration budget."""

    def __init__(self, max_iterations: int, path: str):
        super().__init__(
            f"Maximum resolution iterations ({max_iterations}) exceeded. "
            f"Possible circular reference or too many nested variables: {path}",
            path=path,
            reason="MAX_ITERATIONS_EXCEEDED",
        )
        self.max_iterations = max_iterations


class SecurityViolationError(PathResolverError):
    """A path is not confined to the allowed roots."""

    def __init__(self, detail: str, path: str = "", reason: str = "ACCESS_DENIED"):
        super().__init__(f"Security violation: {detail}", path=path, reason=reason)


class ConfigLoadError(PathResolverError):
    """A bundle config file exists but could not be read or parsed."""

    def __init__(self, detail: str, path: str = ""):
        super().__init__(
            f"Failed to load bundle config: {detail}",
            path=path,
            reason="CONFIG_LOAD_FAILED",
        )
