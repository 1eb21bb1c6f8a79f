"""
In-memory registry store for the NMOS ledger.

The store holds one collection per resource kind, keyed by record id,
and is the only owner of that state. Every record admitted is validated
first and stamped with a fresh version.

Invariants:
    - id is unique within a kind; a put with a known id replaces the
      record in place (insertion order is kept) and advances its version
    - A record's version never decreases and is never reused
    - A failed put leaves the store unchanged
    - Records handed out are immutable snapshots
    - Cross-kind references are not enforced; dangling ones are logged

Thread safety:
    One lock per kind. put/get/get_all/delete on a kind are serialized
    behind it, so readers see either the state before a put or after it.
    Queries copy the collection under the lock and filter outside it.
    Kinds never hold each other's locks at the same time.

Example:
    >>> store = RegistryStore()
    >>> node, store = store.put_node(Node.create(label="Punkd Up Node",
    ...                                          href="http://tereshkova.local:3000"))
    >>> store.get_node(node.id) == node
    True
    >>> store.get_nodes({}).total
    1
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from collections.abc import Mapping
from typing import Any, Dict, Optional, Tuple

from ..errors import InvalidIdentifierError, NotFoundError
from ..model.types import (
    RESOURCE_TYPES,
    Device,
    Flow,
    Node,
    Receiver,
    Resource,
    ResourceKind,
    Sender,
    Source,
)
from ..model.validate import valid_id, validate_or_raise
from ..model.versions import Version, VersionGenerator, get_version_generator
from ..query.engine import Page, QueryEngine

logger = logging.getLogger(__name__)

# Foreign keys per kind: (field name, kind referenced)
_REFERENCES: Dict[ResourceKind, Tuple[Tuple[str, ResourceKind], ...]] = {
    ResourceKind.NODE: (),
    ResourceKind.DEVICE: (("node_id", ResourceKind.NODE),),
    ResourceKind.SOURCE: (("device_id", ResourceKind.DEVICE),),
    ResourceKind.FLOW: (("source_id", ResourceKind.SOURCE),),
    ResourceKind.SENDER: (
        ("flow_id", ResourceKind.FLOW),
        ("device_id", ResourceKind.DEVICE),
    ),
    ResourceKind.RECEIVER: (("device_id", ResourceKind.DEVICE),),
}


class KindCollection:
    """Records of one kind, in insertion order, behind one lock."""

    def __init__(self, kind: ResourceKind) -> None:
        self.kind = kind
        self.record_type = RESOURCE_TYPES[kind]
        self.records: Dict[str, Resource] = {}
        self.lock = threading.Lock()


class RegistryStore:
    """Authoritative in-memory store of ledger records.

    Attributes:
        engine: Query engine used by get_all()

    Example:
        >>> store = RegistryStore()
        >>> device, _ = store.put_device(Device.create(label="Dat Punking Ting",
        ...                                            node_id=node.id))
        >>> store.get_devices({"node_id": node.id}).records == (device,)
        True
    """

    def __init__(
        self,
        engine: Optional[QueryEngine] = None,
        version_generator: Optional[VersionGenerator] = None,
    ) -> None:
        """Initialize an empty store.

        Args:
            engine: Query engine (default configuration if not provided)
            version_generator: Source of version tokens (process-wide
                generator if not provided)
        """
        self.engine = engine or QueryEngine()
        self._versions = version_generator or get_version_generator()
        self._collections: Dict[ResourceKind, KindCollection] = {
            kind: KindCollection(kind) for kind in ResourceKind
        }

    # --- Generic operations ---

    def put(self, record: Resource) -> Tuple[Resource, RegistryStore]:
        """Insert or replace a record.

        Args:
            record: Record of any kind

        Returns:
            Tuple of (stored record with its new version, this store)

        Raises:
            ValidationError: If the record is invalid; the store is unchanged
        """
        if not isinstance(record, Resource):
            raise TypeError(f"Expected a ledger resource, got {type(record).__name__}")

        validate_or_raise(record)
        collection = self._collections[record.KIND]

        with collection.lock:
            floor = Version.parse(record.version)
            existing = collection.records.get(record.id)
            if existing is not None:
                floor = max(floor, Version.parse(existing.version))
            stored = dataclasses.replace(record, version=self._versions.next(floor))
            collection.records[stored.id] = stored

        logger.debug(
            f"{'Replaced' if existing is not None else 'Created'} {record.KIND.value} "
            f"{stored.id} (version={stored.version})"
        )
        self._log_dangling_references(stored)
        return stored, self

    def get(self, kind: ResourceKind, resource_id: Any) -> Resource:
        """Get a record by id.

        Raises:
            InvalidIdentifierError: If resource_id is not a valid UUID
            NotFoundError: If no record of this kind has that id
        """
        if not valid_id(resource_id):
            raise InvalidIdentifierError(resource_id)

        collection = self._collections[kind]
        with collection.lock:
            record = collection.records.get(resource_id)
        if record is None:
            raise NotFoundError(kind.value, resource_id)
        return record

    def get_all(
        self,
        kind: ResourceKind,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Page:
        """Query a collection.

        Args:
            kind: Collection to query
            params: Raw query parameters (filters plus page and limit)

        Returns:
            The requested page of matching records
        """
        collection = self._collections[kind]
        with collection.lock:
            snapshot = tuple(collection.records.values())
        return self.engine.run(snapshot, collection.record_type, params)

    def delete(self, kind: ResourceKind, resource_id: Any) -> Resource:
        """Remove a record.

        Returns:
            The removed record

        Raises:
            InvalidIdentifierError: If resource_id is not a valid UUID
            NotFoundError: If no record of this kind has that id
        """
        if not valid_id(resource_id):
            raise InvalidIdentifierError(resource_id)

        collection = self._collections[kind]
        with collection.lock:
            record = collection.records.pop(resource_id, None)
        if record is None:
            raise NotFoundError(kind.value, resource_id)
        logger.debug(f"Deleted {kind.value} {resource_id}")
        return record

    def count(self, kind: ResourceKind) -> int:
        """Number of records of a kind."""
        collection = self._collections[kind]
        with collection.lock:
            return len(collection.records)

    def contains(self, kind: ResourceKind, resource_id: str) -> bool:
        collection = self._collections[kind]
        with collection.lock:
            return resource_id in collection.records

    def _put_as(self, kind: ResourceKind, record: Resource) -> Tuple[Resource, RegistryStore]:
        if getattr(record, "KIND", None) is not kind:
            raise TypeError(f"Expected a {kind.value}, got {type(record).__name__}")
        return self.put(record)

    def _log_dangling_references(self, record: Resource) -> None:
        for field_name, target in _REFERENCES[record.KIND]:
            ref = getattr(record, field_name)
            if not self.contains(target, ref):
                logger.debug(
                    f"{record.KIND.value.capitalize()} {record.id} references "
                    f"unregistered {target.value} {ref} via {field_name}"
                )

    # --- Nodes ---

    def put_node(self, node: Node) -> Tuple[Node, RegistryStore]:
        return self._put_as(ResourceKind.NODE, node)

    def get_node(self, node_id: str) -> Node:
        return self.get(ResourceKind.NODE, node_id)

    def get_nodes(self, params: Optional[Mapping[str, Any]] = None) -> Page:
        return self.get_all(ResourceKind.NODE, params)

    def delete_node(self, node_id: str) -> Node:
        return self.delete(ResourceKind.NODE, node_id)

    # --- Devices ---

    def put_device(self, device: Device) -> Tuple[Device, RegistryStore]:
        return self._put_as(ResourceKind.DEVICE, device)

    def get_device(self, device_id: str) -> Device:
        return self.get(ResourceKind.DEVICE, device_id)

    def get_devices(self, params: Optional[Mapping[str, Any]] = None) -> Page:
        return self.get_all(ResourceKind.DEVICE, params)

    def delete_device(self, device_id: str) -> Device:
        return self.delete(ResourceKind.DEVICE, device_id)

    # --- Sources ---

    def put_source(self, source: Source) -> Tuple[Source, RegistryStore]:
        return self._put_as(ResourceKind.SOURCE, source)

    def get_source(self, source_id: str) -> Source:
        return self.get(ResourceKind.SOURCE, source_id)

    def get_sources(self, params: Optional[Mapping[str, Any]] = None) -> Page:
        return self.get_all(ResourceKind.SOURCE, params)

    def delete_source(self, source_id: str) -> Source:
        return self.delete(ResourceKind.SOURCE, source_id)

    # --- Flows ---

    def put_flow(self, flow: Flow) -> Tuple[Flow, RegistryStore]:
        return self._put_as(ResourceKind.FLOW, flow)

    def get_flow(self, flow_id: str) -> Flow:
        return self.get(ResourceKind.FLOW, flow_id)

    def get_flows(self, params: Optional[Mapping[str, Any]] = None) -> Page:
        return self.get_all(ResourceKind.FLOW, params)

    def delete_flow(self, flow_id: str) -> Flow:
        return self.delete(ResourceKind.FLOW, flow_id)

    # --- Senders ---

    def put_sender(self, sender: Sender) -> Tuple[Sender, RegistryStore]:
        return self._put_as(ResourceKind.SENDER, sender)

    def get_sender(self, sender_id: str) -> Sender:
        return self.get(ResourceKind.SENDER, sender_id)

    def get_senders(self, params: Optional[Mapping[str, Any]] = None) -> Page:
        return self.get_all(ResourceKind.SENDER, params)

    def delete_sender(self, sender_id: str) -> Sender:
        return self.delete(ResourceKind.SENDER, sender_id)

    # --- Receivers ---

    def put_receiver(self, receiver: Receiver) -> Tuple[Receiver, RegistryStore]:
        return self._put_as(ResourceKind.RECEIVER, receiver)

    def get_receiver(self, receiver_id: str) -> Receiver:
        return self.get(ResourceKind.RECEIVER, receiver_id)

    def get_receivers(self, params: Optional[Mapping[str, Any]] = None) -> Page:
        return self.get_all(ResourceKind.RECEIVER, params)

    def delete_receiver(self, receiver_id: str) -> Receiver:
        return self.delete(ResourceKind.RECEIVER, receiver_id)
