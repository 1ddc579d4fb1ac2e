"""
Call Module

1:1 and group call lifecycle, descriptor validation and addressing.
"""
from .service import CallCoordinator
from .addressing import other_party, recipients_for, can_act_on
from .group import GROUP_CALL_STARTED, GROUP_CALL_ALREADY_ACTIVE
from .validators import validate_descriptor, server_mediated_descriptor

__all__ = [
    "CallCoordinator",
    "other_party",
    "recipients_for",
    "can_act_on",
    "GROUP_CALL_STARTED",
    "GROUP_CALL_ALREADY_ACTIVE",
    "validate_descriptor",
    "server_mediated_descriptor",
]
