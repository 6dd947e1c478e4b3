"""
Module Manager System

This package provides the lifecycle contract for business modules, the
registry that orchestrates them, and the manager that instantiates the
modules enabled in configuration.
"""

from .exceptions import ModuleError, ModuleInitializationError, ModuleStartError, UnknownModuleError
from .module_definition import Module, ModuleDependencies, ModuleStatus
from .module_manager import ModuleManager
from .module_registry import ModuleRegistry

__all__ = [
    'Module',
    'ModuleDependencies',
    'ModuleStatus',
    'ModuleManager',
    'ModuleRegistry',
    'ModuleError',
    'ModuleInitializationError',
    'ModuleStartError',
    'UnknownModuleError',
]
