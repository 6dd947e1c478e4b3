"""
Module Lifecycle Errors
"""


class ModuleError(Exception):
    """Base class for module management errors."""


class UnknownModuleError(ModuleError):
    """Raised when configuration enables a module that has no registered constructor."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"unknown module: {name}")


class ModuleInitializationError(ModuleError):
    """Raised when a module fails to initialize."""

    def __init__(self, name: str, cause: Exception):
        self.name = name
        self.cause = cause
        super().__init__(f"failed to initialize module {name}: {cause}")


class ModuleStartError(ModuleError):
    """Raised when a module fails to start."""

    def __init__(self, name: str, cause: Exception):
        self.name = name
        self.cause = cause
        super().__init__(f"failed to start module {name}: {cause}")
