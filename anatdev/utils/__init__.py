"""
anatdev Utilities
=================
"""

from anatdev.utils.atomic import atomic_output

__all__ = ["atomic_output"]
