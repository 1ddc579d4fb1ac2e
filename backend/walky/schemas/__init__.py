"""
Schemas Package

Pydantic request/response models for the REST API (camelCase on the wire).
"""

from walky.schemas.base import CamelModel

__all__ = [
    "CamelModel",
]
