"""Public package API for interpose."""

from interpose.api import contains_by_value
from interpose.api import enumeration
from interpose.api import hide_private
from interpose.api import singleton
from interpose.api import track_changes
from interpose.api import validated
from interpose.api import with_defaults
from interpose.api import wrap
from interpose.api import wrap_revocable
from interpose.errors import ImmutableError
from interpose.errors import InterposeError
from interpose.errors import PolicyViolationError
from interpose.errors import RevokedAccessError
from interpose.errors import UnknownMemberError
from interpose.errors import UnsupportedOperationError
from interpose.errors import ValidationError
from interpose.policies import Enumeration
from interpose.policies import SingletonCache
from interpose.policies import within_range
from interpose.runtime import OPERATIONS
from interpose.runtime import HandlerTable
from interpose.runtime import Revocable
from interpose.runtime import RevocationController
from interpose.runtime import VirtualObject
from interpose.store import ABSENT
from interpose.store import LENGTH_KEY

__all__: list[str] = [
    "ABSENT",
    "LENGTH_KEY",
    "OPERATIONS",
    "contains_by_value",
    "enumeration",
    "hide_private",
    "singleton",
    "track_changes",
    "validated",
    "with_defaults",
    "within_range",
    "wrap",
    "wrap_revocable",
    "Enumeration",
    "HandlerTable",
    "Revocable",
    "RevocationController",
    "SingletonCache",
    "VirtualObject",
    "ImmutableError",
    "InterposeError",
    "PolicyViolationError",
    "RevokedAccessError",
    "UnknownMemberError",
    "UnsupportedOperationError",
    "ValidationError",
]
