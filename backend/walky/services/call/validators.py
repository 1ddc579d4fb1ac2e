"""
Call Validators

Offer/answer descriptor checks. Media never flows peer-to-peer, so the
descriptor is normally the server-mediated marker; a real session
description is still accepted when it is well formed.
"""
from typing import Any, Dict, Optional

from walky.config.constants import SERVER_MEDIATED_DESCRIPTOR_TYPE
from walky.services.exceptions import InvalidDescriptorError


def server_mediated_descriptor() -> Dict[str, str]:
    return {"type": SERVER_MEDIATED_DESCRIPTOR_TYPE}


def validate_descriptor(descriptor: Optional[Dict[str, Any]], expected_type: str) -> Dict[str, Any]:
    """
    Validate an offer or answer descriptor.

    Args:
        descriptor: Opaque dict from the client
        expected_type: "offer" or "answer"

    Returns:
        The descriptor, unchanged

    Raises:
        InvalidDescriptorError if missing or malformed
    """
    if not isinstance(descriptor, dict) or not descriptor:
        raise InvalidDescriptorError(f"Missing {expected_type}")

    descriptor_type = descriptor.get("type")
    if descriptor_type == SERVER_MEDIATED_DESCRIPTOR_TYPE:
        return descriptor

    if not descriptor_type or not descriptor.get("sdp"):
        raise InvalidDescriptorError(f"Invalid {expected_type}: type and sdp are required")
    if descriptor_type != expected_type:
        raise InvalidDescriptorError(f"Invalid {expected_type}: unexpected type '{descriptor_type}'")
    return descriptor
