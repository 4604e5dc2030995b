"""Keep bug and test case relationships consistent and live."""

from tracelink.linker import LinkOperator
from tracelink.models import FilterScope, LinkError, RelationshipMap, Resource, Result, StoreStatus, UnlinkError
from tracelink.resolver import resolve
from tracelink.store import RelationshipStore

__all__ = [
    "FilterScope",
    "LinkError",
    "LinkOperator",
    "RelationshipMap",
    "RelationshipStore",
    "Resource",
    "Result",
    "StoreStatus",
    "UnlinkError",
    "resolve",
]
