from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union
import json

from shared.utils import is_player_id


class BattlerProtocolError(Exception):
    """Base class for every error the client reports to its listeners."""
    pass
class DecodeFailure(BattlerProtocolError):
    """Raised when an inbound frame is not a parseable JSON value."""

    def __init__(self, message: str, raw: Union[str, bytes, None] = None) -> None:
        super().__init__(message)
        self.raw = raw
class ProtocolViolation(BattlerProtocolError):
    """Raised when an envelope does not fit the current connection phase."""

    def __init__(self, message: str, phase: Optional[str] = None,
                 envelope: Optional["InboundEnvelope"] = None) -> None:
        super().__init__(message)
        self.phase = phase
        self.envelope = envelope
class TransportError(BattlerProtocolError):
    """Raised when the websocket cannot be opened or a frame cannot be written."""
    pass
class NotConnectedError(TransportError):
    """Raised when a command is sent while the connection is not open."""
    pass


DISCRIMINANT = "type"


class EnvelopeKind(str, Enum):
    """Structural shape of a decoded frame."""
    SCALAR = "scalar"              # bare player id
    MAPPING = "mapping"            # object without a discriminant
    TYPED = "typed"                # object carrying a discriminant
    UNRECOGNIZED = "unrecognized"  # null, arrays, floats, booleans


@dataclass(frozen=True)
class InboundEnvelope:
    """
    One decoded inbound frame.

    The kind is purely structural. Whether a SCALAR is an identity or a
    MAPPING is a snapshot is decided by the connection phase that receives
    it, never by the decoder.
    """
    kind: EnvelopeKind
    value: Any
    type: Optional[str] = None                                 # discriminant, TYPED only
    fields: Dict[str, Any] = field(default_factory=dict)       # everything but the discriminant

    @property
    def is_typed(self) -> bool:
        return self.kind is EnvelopeKind.TYPED

    def describe(self) -> str:
        """Short label for log lines and error messages"""
        if self.kind is EnvelopeKind.TYPED:
            return f"typed envelope {self.type!r}"
        return f"{self.kind.value} frame"


def decode(raw: Union[str, bytes]) -> InboundEnvelope:
    """
    Parse a raw websocket frame into an InboundEnvelope.

    Raises:
        DecodeFailure: the frame is not UTF-8 or not JSON
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = bytes(raw).decode('utf-8')
        except UnicodeDecodeError as e:
            raise DecodeFailure(f"Frame is not valid UTF-8: {e}", raw=bytes(raw)) from e

    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        raise DecodeFailure(f"Invalid JSON: {e}", raw=raw) from e

    return classify(data)


def classify(data: Any) -> InboundEnvelope:
    """Classify an already-parsed JSON value by shape"""
    if isinstance(data, dict):
        msg_type = data.get(DISCRIMINANT)
        if msg_type is None:
            return InboundEnvelope(kind=EnvelopeKind.MAPPING, value=data)
        fields = {k: v for k, v in data.items() if k != DISCRIMINANT}
        return InboundEnvelope(
            kind=EnvelopeKind.TYPED,
            value=data,
            type=msg_type if isinstance(msg_type, str) else str(msg_type),
            fields=fields,
        )

    if is_player_id(data):
        return InboundEnvelope(kind=EnvelopeKind.SCALAR, value=data)

    return InboundEnvelope(kind=EnvelopeKind.UNRECOGNIZED, value=data)


@dataclass(frozen=True)
class OutboundEnvelope:
    """
    An action command sent to the server:
    {
    "type": "STRING",
    ...fields
    }
    Built once per action, sent once, never retried.
    """
    type: str
    fields: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert Envelope to the wire dictionary"""
        result: Dict[str, Any] = {DISCRIMINANT: self.type}
        result.update(self.fields)
        return result

    def to_json(self) -> str:
        """Convert Envelope to JSON string"""
        return json.dumps(self.to_dict(), separators=(',', ':'), sort_keys=True)


def create_envelope(msg_type: str, **fields: Any) -> OutboundEnvelope:
    """Helper to create a new outbound envelope"""
    if DISCRIMINANT in fields:
        raise ValueError(f"'{DISCRIMINANT}' is reserved for the discriminant")
    return OutboundEnvelope(type=msg_type, fields=dict(fields))
