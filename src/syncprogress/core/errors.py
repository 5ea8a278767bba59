"""Classification of connectivity errors reported during sync.

Every error kind maps to exactly one outcome for each mode. Nothing here
raises for a known kind and unknown raw values are coerced to
`ErrorKind.UNKNOWN`, so the caller always gets something to report.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Error kinds reported by the connectivity source.

    Values:
        NODE_PROTOCOL_BASE: Generic node protocol failure.
        NODE_PROTOCOL_INCOMPATIBLE: Peer speaks an incompatible protocol version.
        CONNECTION_BASE: Generic connection failure.
        CONNECTION_TIMED_OUT: Connection attempt timed out.
        CONNECTION_REFUSED: Peer refused the connection.
        CONNECTION_HOST_UNREACH: Peer host unreachable.
        CONNECTION_ADDR_IN_USE: Local port already in use.
        TIME_OUT_OF_SYNC: Local clock too far from the peer's.
        INTERNAL_NODE_START_FAILED: Integrated node failed to start.
        HOST_RESOLVED_ERROR: Peer host name could not be resolved.
        UNKNOWN: Anything the source reports that is not listed above.
    """

    NODE_PROTOCOL_BASE = "node_protocol_base"
    NODE_PROTOCOL_INCOMPATIBLE = "node_protocol_incompatible"
    CONNECTION_BASE = "connection_base"
    CONNECTION_TIMED_OUT = "connection_timed_out"
    CONNECTION_REFUSED = "connection_refused"
    CONNECTION_HOST_UNREACH = "connection_host_unreach"
    CONNECTION_ADDR_IN_USE = "connection_addr_in_use"
    TIME_OUT_OF_SYNC = "time_out_of_sync"
    INTERNAL_NODE_START_FAILED = "internal_node_start_failed"
    HOST_RESOLVED_ERROR = "host_resolved_error"
    UNKNOWN = "unknown"

    @classmethod
    def coerce(cls, value: Any) -> "ErrorKind":
        """Convert a raw value (member, value or name) to an ErrorKind.

        Unrecognised values become UNKNOWN.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value)
            except ValueError:
                return cls.__members__.get(value.upper(), cls.UNKNOWN)
        return cls.UNKNOWN


class ErrorCategory(str, Enum):
    """Outcome of classifying an error.

    Values:
        FATAL_PEER_INCOMPATIBLE: Attempt cannot continue with this peer set.
        CONNECTION_ERROR: Shown to the user, the attempt continues.
        UNCLASSIFIED: Not mapped for the current mode, still surfaced.
        DEGRADED_COMPLETION: Finish the loading screen in an error state.
    """

    FATAL_PEER_INCOMPATIBLE = "fatal_peer_incompatible"
    CONNECTION_ERROR = "connection_error"
    UNCLASSIFIED = "unclassified"
    DEGRADED_COMPLETION = "degraded_completion"

    @property
    def label(self) -> str:
        return _CATEGORY_LABELS[self]

    @property
    def is_fatal(self) -> bool:
        return self is ErrorCategory.FATAL_PEER_INCOMPATIBLE


_CATEGORY_LABELS = {
    ErrorCategory.FATAL_PEER_INCOMPATIBLE: "Incompatible peer",
    ErrorCategory.CONNECTION_ERROR: "Connection error",
    ErrorCategory.UNCLASSIFIED: "Unexpected error",
    ErrorCategory.DEGRADED_COMPLETION: "Sync finished with errors",
}

_CREATION_MODE_MAP = {
    ErrorKind.NODE_PROTOCOL_INCOMPATIBLE: ErrorCategory.FATAL_PEER_INCOMPATIBLE,
    ErrorKind.CONNECTION_ADDR_IN_USE: ErrorCategory.CONNECTION_ERROR,
    ErrorKind.CONNECTION_REFUSED: ErrorCategory.CONNECTION_ERROR,
    ErrorKind.HOST_RESOLVED_ERROR: ErrorCategory.CONNECTION_ERROR,
}

# Only the port error is reported in normal mode; the rest complete in error.
_NORMAL_MODE_MAP = {
    ErrorKind.CONNECTION_ADDR_IN_USE: ErrorCategory.CONNECTION_ERROR,
}


@dataclass(frozen=True, slots=True)
class ClassifiedError:
    """Classified error handed to the outside world.

    Attributes:
        kind: Error kind as reported.
        category: Classification for the mode in effect.
        description: Description from the source, passed through unmodified.
    """

    kind: ErrorKind
    category: ErrorCategory
    description: str

    @property
    def label(self) -> str:
        return self.category.label


def classify_error(kind: Any, description: str, *, is_creating: bool) -> ClassifiedError:
    """Classify `kind` for the current mode.

    Args:
        kind: ErrorKind, or a raw value accepted by `ErrorKind.coerce()`.
        description: Human description from the source, kept as is.
        is_creating: True while the sync runs as part of initial setup.

    Returns:
        ClassifiedError. Creation mode falls back to UNCLASSIFIED, normal
        mode falls back to DEGRADED_COMPLETION.
    """
    kind = ErrorKind.coerce(kind)
    if is_creating:
        category = _CREATION_MODE_MAP.get(kind, ErrorCategory.UNCLASSIFIED)
    else:
        category = _NORMAL_MODE_MAP.get(kind, ErrorCategory.DEGRADED_COMPLETION)
    return ClassifiedError(kind=kind, category=category, description=description)
