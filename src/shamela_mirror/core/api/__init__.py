"""
HTTP API for the library mirror.
"""

from shamela_mirror.core.api.app import ErrorCode, create_app

__all__ = ["create_app", "ErrorCode"]
