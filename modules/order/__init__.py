"""
Order Module
"""

from .order_module import OrderModule

__all__ = ['OrderModule']
