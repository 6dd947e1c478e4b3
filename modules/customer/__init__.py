"""
Customer Module

Customer management with optimistic concurrency, soft deletion and
domain events.
"""

from .customer_module import CustomerModule

__all__ = ['CustomerModule']
