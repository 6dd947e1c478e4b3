"""
Business Modules

Each subpackage is one module with its own database and migrations
directory (``modules/<name>/migrations``).
"""

from .customer import CustomerModule
from .order import OrderModule
from .user import UserModule

BUILTIN_MODULES = {
    "customer": CustomerModule,
    "order": OrderModule,
    "user": UserModule,
}


def register_builtin_modules(manager) -> None:
    """Register the constructor of every built-in module on ``manager``."""
    for name, constructor in BUILTIN_MODULES.items():
        manager.register_module(name, constructor)
