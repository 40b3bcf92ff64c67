# printdesk/db/document_store.py
# Contract for the document store the lifecycle core runs on: per-document
# reads/writes plus an all-or-nothing multi-document batch commit.

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Literal, Optional, Tuple, Union
from pydantic import BaseModel, Field

ORDERS_COLLECTION = "orders"
AGENTS_COLLECTION = "agents"
PRICING_COLLECTION = "delivery_pricing"

SortSpec = List[Tuple[str, int]]


class PreconditionFailedError(Exception):
    """An `expect` precondition did not hold at commit time. Nothing was written."""
    def __init__(self, collection: str, key: str):
        super().__init__(f"Precondition failed for '{collection}/{key}'.")
        self.collection = collection
        self.key = key


class DocumentExistsError(Exception):
    def __init__(self, collection: str, key: str):
        super().__init__(f"Document '{collection}/{key}' already exists.")
        self.collection = collection
        self.key = key


class DocumentUpdate(BaseModel):
    """Field operations applied to one document, with optional compare-and-swap.

    Paths may be dotted (``performance.orders_assigned``). ``expect`` maps a
    path to the value it must currently hold; ``None`` matches a null or
    missing field.
    """
    set_fields: Dict[str, Any] = Field(default_factory=dict)
    unset_fields: List[str] = Field(default_factory=list)
    inc_fields: Dict[str, Union[int, float]] = Field(default_factory=dict)
    push_fields: Dict[str, Any] = Field(default_factory=dict)
    add_to_set_fields: Dict[str, List[Any]] = Field(default_factory=dict)
    pull_fields: Dict[str, List[Any]] = Field(default_factory=dict)
    expect: Dict[str, Any] = Field(default_factory=dict)

    model_config = {"arbitrary_types_allowed": True}

    def is_empty(self) -> bool:
        return not (self.set_fields or self.unset_fields or self.inc_fields or self.push_fields
                    or self.add_to_set_fields or self.pull_fields)

    def to_mongo(self) -> Dict[str, Any]:
        update: Dict[str, Any] = {}
        if self.set_fields:
            update["$set"] = dict(self.set_fields)
        if self.unset_fields:
            update["$unset"] = {path: "" for path in self.unset_fields}
        if self.inc_fields:
            update["$inc"] = dict(self.inc_fields)
        if self.push_fields:
            update["$push"] = dict(self.push_fields)
        if self.add_to_set_fields:
            update["$addToSet"] = {path: {"$each": list(values)} for path, values in self.add_to_set_fields.items()}
        if self.pull_fields:
            update["$pull"] = {path: {"$in": list(values)} for path, values in self.pull_fields.items()}
        return update


class BatchOperation(BaseModel):
    kind: Literal["create", "update", "delete"]
    collection: str
    key: str
    data: Optional[Dict[str, Any]] = None
    update: Optional[DocumentUpdate] = None
    expect: Dict[str, Any] = Field(default_factory=dict)  # delete preconditions

    model_config = {"arbitrary_types_allowed": True}


class WriteBatch:
    """Collects writes to be committed atomically by DocumentStore.commit()."""

    def __init__(self):
        self.operations: List[BatchOperation] = []

    def create(self, collection: str, key: str, data: Dict[str, Any]) -> "WriteBatch":
        self.operations.append(BatchOperation(kind="create", collection=collection, key=key, data=data))
        return self

    def update(self, collection: str, key: str, update: DocumentUpdate) -> "WriteBatch":
        self.operations.append(BatchOperation(kind="update", collection=collection, key=key, update=update))
        return self

    def delete(self, collection: str, key: str, expect: Optional[Dict[str, Any]] = None) -> "WriteBatch":
        self.operations.append(BatchOperation(kind="delete", collection=collection, key=key, expect=expect or {}))
        return self

    def __len__(self) -> int:
        return len(self.operations)


class DocumentStore(ABC):
    """Capabilities the core consumes from the persistent document store."""

    def batch(self) -> WriteBatch:
        return WriteBatch()

    @abstractmethod
    async def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]: ...

    @abstractmethod
    async def create(self, collection: str, key: str, data: Dict[str, Any]) -> Dict[str, Any]: ...

    @abstractmethod
    async def update(self, collection: str, key: str, update: DocumentUpdate) -> Optional[Dict[str, Any]]: ...

    @abstractmethod
    async def delete(self, collection: str, key: str) -> bool: ...

    @abstractmethod
    async def find(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
        sort: Optional[SortSpec] = None,
        limit: int = 0,
        skip: int = 0,
    ) -> List[Dict[str, Any]]: ...

    @abstractmethod
    async def count(self, collection: str, filters: Optional[Dict[str, Any]] = None) -> int: ...

    @abstractmethod
    async def commit(self, batch: WriteBatch) -> None:
        """Applies every operation of the batch or none of them."""

    async def ping(self) -> bool:
        return True
