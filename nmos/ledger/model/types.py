"""
Resource types for the NMOS ledger.

This module defines the six record kinds held by the registry and the
field descriptors their validation and querying are driven by:
- FieldDef: Descriptor for one field of a record
- Resource: Base shape shared by all kinds (id, version, label, description)
- Node, Device, Source, Flow, Sender, Receiver: The resource kinds

Invariants:
    - Records are frozen; nested maps and lists are frozen into hashable
      mappings and tuples so a record handed out can never change
    - Foreign keys (node_id, device_id, ...) are copies of another record's
      id, never live references
    - Enum fields hold the URN string value, not the Enum member

How to change safely:
    - Add new fields with a default so existing callers keep working
    - Add new enum values at the end of the Enum
    - Declare every new field in the kind's FIELDS tuple, otherwise it is
      neither validated nor queryable

Example:
    >>> node = Node.create(label="Punkd Up Node", href="http://tereshkova.local:3000",
    ...                    hostname="tereshkova")
    >>> device = Device.create(label="Dat Punking Ting", node_id=node.id)
    >>> device.valid()
    True
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, Iterator, Optional, Tuple, Type

from .validate import (
    generate_id,
    generate_label,
    generate_version,
    is_valid,
    valid_id,
    valid_label,
)
from .versions import valid_version


class ResourceKind(Enum):
    """The kinds of record held by the registry."""

    NODE = "node"
    DEVICE = "device"
    SOURCE = "source"
    FLOW = "flow"
    SENDER = "sender"
    RECEIVER = "receiver"

    @property
    def plural(self) -> str:
        """Collection name, as used in query paths."""
        return f"{self.value}s"

    @classmethod
    def from_plural(cls, value: str) -> ResourceKind:
        """Convert a collection name ("nodes") to its kind.

        Raises:
            ValueError: If value names no collection
        """
        for kind in cls:
            if kind.plural == value:
                return kind
        valid = [k.plural for k in cls]
        raise ValueError(f"Invalid collection '{value}'. Valid collections: {valid}")


class Format(Enum):
    """Essence formats of sources, flows and receivers."""

    VIDEO = "urn:x-nmos:format:video"
    AUDIO = "urn:x-nmos:format:audio"
    DATA = "urn:x-nmos:format:data"
    MUX = "urn:x-nmos:format:mux"


class Transport(Enum):
    """Transports used by senders and receivers."""

    RTP = "urn:x-nmos:transport:rtp"
    RTP_UCAST = "urn:x-nmos:transport:rtp.ucast"
    RTP_MCAST = "urn:x-nmos:transport:rtp.mcast"
    DASH = "urn:x-nmos:transport:dash"


class DeviceType(Enum):
    """Device types."""

    GENERIC = "urn:x-nmos:device:generic"
    PIPELINE = "urn:x-nmos:device:pipeline"


class FieldKind(Enum):
    """Supported field types.

    These decide both the validation rule and how a query parameter of
    the same name is matched.
    """

    UUID = "uuid"
    VERSION = "version"
    LABEL = "label"  # Non-empty string
    TEXT = "text"  # Free text
    STRING = "str"
    ENUM = "enum"
    UUID_LIST = "list_uuid"
    MAP = "map"
    MAP_LIST = "list_map"


@dataclass(frozen=True)
class FieldDef:
    """Definition of a single record field.

    Attributes:
        name: Attribute name on the record, and query parameter name
        kind: The data type of the field
        required: Whether a value must be present
        enum_values: Valid values if kind is ENUM
        searchable: Whether query values are regular expressions searched
            within the field rather than compared for equality
        description: Human-readable description

    Example:
        >>> FieldDef("format", FieldKind.ENUM, required=True,
        ...          enum_values=tuple(f.value for f in Format))
    """

    name: str
    kind: FieldKind
    required: bool = False
    enum_values: Optional[Tuple[str, ...]] = None
    searchable: bool = False
    description: str = ""

    def __post_init__(self) -> None:
        """Validate field definition."""
        if not self.name:
            raise ValueError("Field name cannot be empty")
        if self.kind == FieldKind.ENUM and not self.enum_values:
            raise ValueError(f"enum_values required for ENUM field '{self.name}'")

    def check(self, value: Any) -> Optional[str]:
        """Check a value against this definition.

        Returns:
            Reason the value is invalid, or None if it is valid
        """
        if value is None:
            return "is required" if self.required else None

        if self.kind == FieldKind.UUID:
            if not valid_id(value):
                return "must be a valid UUID"
        elif self.kind == FieldKind.VERSION:
            if not valid_version(value):
                return "must be a version of the form '<seconds>:<nanoseconds>'"
        elif self.kind == FieldKind.LABEL:
            if not valid_label(value):
                return "must be a non-empty string"
        elif self.kind in (FieldKind.TEXT, FieldKind.STRING):
            if not isinstance(value, str):
                return f"must be a string, got {type(value).__name__}"
        elif self.kind == FieldKind.ENUM:
            if value not in self.enum_values:
                return f"must be one of {list(self.enum_values)}, got {value!r}"
        elif self.kind == FieldKind.UUID_LIST:
            if not isinstance(value, (list, tuple)):
                return f"must be a list, got {type(value).__name__}"
            for i, item in enumerate(value):
                if not valid_id(item):
                    return f"item {i} must be a valid UUID"
        elif self.kind == FieldKind.MAP:
            if not isinstance(value, Mapping):
                return f"must be an object, got {type(value).__name__}"
        elif self.kind == FieldKind.MAP_LIST:
            if not isinstance(value, (list, tuple)):
                return f"must be a list, got {type(value).__name__}"
            for i, item in enumerate(value):
                if not isinstance(item, Mapping):
                    return f"item {i} must be an object"

        return None


class FrozenMap(Mapping):
    """Read-only, hashable mapping holding the nested objects of a record.

    Values are frozen on the way in, so two equal maps hash equally and
    records holding them can be used as set members and dict keys.
    """

    __slots__ = ("_data", "_hash")

    def __init__(self, data: Optional[Mapping[str, Any]] = None) -> None:
        self._data = {k: _freeze(v) for k, v in (data or {}).items()}
        self._hash: Optional[int] = None

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __hash__(self) -> int:
        if self._hash is None:
            self._hash = hash(frozenset(self._data.items()))
        return self._hash

    def __repr__(self) -> str:
        return f"FrozenMap({self._data!r})"


def _freeze(value: Any) -> Any:
    if isinstance(value, FrozenMap):
        return value
    if isinstance(value, Mapping):
        return FrozenMap(value)
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    if isinstance(value, Enum):
        return value.value
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [_thaw(v) for v in value]
    return value


_FORMATS = tuple(f.value for f in Format)
_TRANSPORTS = tuple(t.value for t in Transport)

BASE_FIELDS: Tuple[FieldDef, ...] = (
    FieldDef("id", FieldKind.UUID, required=True),
    FieldDef("version", FieldKind.VERSION, required=True),
    FieldDef("label", FieldKind.LABEL, required=True, searchable=True),
    FieldDef("description", FieldKind.TEXT, searchable=True),
)


@dataclass(frozen=True)
class Resource:
    """Base shape shared by every resource kind.

    The plain constructor stores values as given, so a record can be
    built (and then rejected by the store) with bad values. Use create()
    to get the normalising behaviour: a missing or malformed id or
    version is generated and a missing label gets a placeholder.

    Attributes:
        id: UUID identifier, unique within the kind
        version: Version token, "<seconds>:<nanoseconds>"
        label: Short human-readable name
        description: Optional free text
    """

    KIND: ClassVar[ResourceKind]
    FIELDS: ClassVar[Tuple[FieldDef, ...]] = BASE_FIELDS

    id: Optional[str] = None
    version: Optional[str] = None
    label: Optional[str] = None
    description: Optional[str] = None

    def __post_init__(self) -> None:
        for f in dataclasses.fields(self):
            value = getattr(self, f.name)
            frozen = _freeze(value)
            if frozen is not value:
                object.__setattr__(self, f.name, frozen)

    @classmethod
    def create(
        cls,
        id: Optional[str] = None,
        version: Optional[str] = None,
        label: Optional[str] = None,
        **fields: Any,
    ):
        """Build a record, generating id, version and label where needed."""
        return cls(
            id=generate_id(id),
            version=generate_version(version),
            label=generate_label(label),
            **fields,
        )

    @classmethod
    def field_def(cls, name: str) -> Optional[FieldDef]:
        """Get the descriptor of a field by name, None if unknown."""
        for field_def in cls.FIELDS:
            if field_def.name == name:
                return field_def
        return None

    def valid(self) -> bool:
        """Whether every declared field passes its check."""
        return is_valid(self)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain, JSON-serialisable dictionary."""
        return {f.name: _thaw(getattr(self, f.name)) for f in dataclasses.fields(self)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]):
        """Create from dictionary representation. Unknown keys are ignored."""
        names = {f.name for f in dataclasses.fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in names})


@dataclass(frozen=True)
class Node(Resource):
    """A host running ledger-aware services.

    Attributes:
        href: Base URL of the node's API
        hostname: Host name of the node
        caps: Capabilities
        services: Services offered, each an object with href and type
    """

    KIND: ClassVar[ResourceKind] = ResourceKind.NODE
    FIELDS: ClassVar[Tuple[FieldDef, ...]] = BASE_FIELDS + (
        FieldDef("href", FieldKind.STRING, required=True),
        FieldDef("hostname", FieldKind.STRING),
        FieldDef("caps", FieldKind.MAP),
        FieldDef("services", FieldKind.MAP_LIST),
    )

    href: Optional[str] = None
    hostname: Optional[str] = None
    caps: Mapping[str, Any] = dataclasses.field(default_factory=dict)
    services: Tuple[Mapping[str, Any], ...] = ()


@dataclass(frozen=True)
class Device(Resource):
    """A logical device hosted by a node."""

    KIND: ClassVar[ResourceKind] = ResourceKind.DEVICE
    FIELDS: ClassVar[Tuple[FieldDef, ...]] = BASE_FIELDS + (
        FieldDef("type", FieldKind.STRING),
        FieldDef("node_id", FieldKind.UUID, required=True),
        FieldDef("senders", FieldKind.UUID_LIST),
        FieldDef("receivers", FieldKind.UUID_LIST),
    )

    type: Optional[str] = None
    node_id: Optional[str] = None
    senders: Tuple[str, ...] = ()
    receivers: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Source(Resource):
    """An origin of essence of one format, belonging to a device."""

    KIND: ClassVar[ResourceKind] = ResourceKind.SOURCE
    FIELDS: ClassVar[Tuple[FieldDef, ...]] = BASE_FIELDS + (
        FieldDef("format", FieldKind.ENUM, required=True, enum_values=_FORMATS),
        FieldDef("caps", FieldKind.MAP),
        FieldDef("tags", FieldKind.MAP),
        FieldDef("device_id", FieldKind.UUID, required=True),
        FieldDef("parents", FieldKind.UUID_LIST),
    )

    format: Optional[str] = None
    caps: Mapping[str, Any] = dataclasses.field(default_factory=dict)
    tags: Mapping[str, Any] = dataclasses.field(default_factory=dict)
    device_id: Optional[str] = None
    parents: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Flow(Resource):
    """A sequence of essence derived from a source."""

    KIND: ClassVar[ResourceKind] = ResourceKind.FLOW
    FIELDS: ClassVar[Tuple[FieldDef, ...]] = BASE_FIELDS + (
        FieldDef("format", FieldKind.ENUM, required=True, enum_values=_FORMATS),
        FieldDef("tags", FieldKind.MAP),
        FieldDef("source_id", FieldKind.UUID, required=True),
        FieldDef("parents", FieldKind.UUID_LIST),
    )

    format: Optional[str] = None
    tags: Mapping[str, Any] = dataclasses.field(default_factory=dict)
    source_id: Optional[str] = None
    parents: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Sender(Resource):
    """Makes a flow available on the network over a transport.

    Attributes:
        flow_id: The flow being sent
        transport: Transport URN
        device_id: Owning device
        manifest_href: URL of the transport manifest (e.g. an SDP file)
    """

    KIND: ClassVar[ResourceKind] = ResourceKind.SENDER
    FIELDS: ClassVar[Tuple[FieldDef, ...]] = BASE_FIELDS + (
        FieldDef("flow_id", FieldKind.UUID, required=True),
        FieldDef("transport", FieldKind.ENUM, required=True, enum_values=_TRANSPORTS),
        FieldDef("device_id", FieldKind.UUID, required=True),
        FieldDef("manifest_href", FieldKind.STRING),
    )

    flow_id: Optional[str] = None
    transport: Optional[str] = None
    device_id: Optional[str] = None
    manifest_href: Optional[str] = None


@dataclass(frozen=True)
class Receiver(Resource):
    """Consumes essence of one format over a transport."""

    KIND: ClassVar[ResourceKind] = ResourceKind.RECEIVER
    FIELDS: ClassVar[Tuple[FieldDef, ...]] = BASE_FIELDS + (
        FieldDef("format", FieldKind.ENUM, required=True, enum_values=_FORMATS),
        FieldDef("caps", FieldKind.MAP),
        FieldDef("tags", FieldKind.MAP),
        FieldDef("device_id", FieldKind.UUID, required=True),
        FieldDef("transport", FieldKind.ENUM, required=True, enum_values=_TRANSPORTS),
        FieldDef("subscription", FieldKind.MAP),
    )

    format: Optional[str] = None
    caps: Mapping[str, Any] = dataclasses.field(default_factory=dict)
    tags: Mapping[str, Any] = dataclasses.field(default_factory=dict)
    device_id: Optional[str] = None
    transport: Optional[str] = None
    subscription: Mapping[str, Any] = dataclasses.field(default_factory=dict)


RESOURCE_TYPES: Dict[ResourceKind, Type[Resource]] = {
    ResourceKind.NODE: Node,
    ResourceKind.DEVICE: Device,
    ResourceKind.SOURCE: Source,
    ResourceKind.FLOW: Flow,
    ResourceKind.SENDER: Sender,
    ResourceKind.RECEIVER: Receiver,
}
