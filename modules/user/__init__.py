"""
User Module
"""

from .user_module import UserModule

__all__ = ['UserModule']
