"""
Core utilities.
"""

from receipt_scanner.core.cache import CoalescingCache

__all__ = ["CoalescingCache"]
