# printdesk/db/mongo_store.py
# Motor implementation of DocumentStore. Batches run inside a client-session
# transaction, so the deployment must be a replica set (or sharded cluster).

from typing import Any, Dict, List, Optional
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from printdesk.core.exceptions import RepositoryError
from printdesk.core.logging_setup import logger
from printdesk.db.document_store import (
    DocumentExistsError, DocumentStore, DocumentUpdate, PreconditionFailedError, SortSpec, WriteBatch,
)


class MongoDocumentStore(DocumentStore):
    def __init__(self, db: AsyncIOMotorDatabase):
        self._db = db

    async def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        try:
            return await self._db[collection].find_one({"_id": key})
        except PyMongoError as e:
            logger.bind(collection=collection, key=key).exception("Database error reading document.")
            raise RepositoryError(f"Error reading {collection}/{key}") from e

    async def create(self, collection: str, key: str, data: Dict[str, Any]) -> Dict[str, Any]:
        doc = {**data, "_id": key}
        try:
            await self._db[collection].insert_one(doc)
            return doc
        except DuplicateKeyError as e:
            raise DocumentExistsError(collection, key) from e
        except PyMongoError as e:
            logger.bind(collection=collection, key=key).exception("Database error creating document.")
            raise RepositoryError(f"Error creating {collection}/{key}") from e

    async def update(self, collection: str, key: str, update: DocumentUpdate) -> Optional[Dict[str, Any]]:
        if update.is_empty():
            return await self.get(collection, key)
        try:
            return await self._db[collection].find_one_and_update(
                {"_id": key, **update.expect},
                update.to_mongo(),
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            logger.bind(collection=collection, key=key).exception("Database error updating document.")
            raise RepositoryError(f"Error updating {collection}/{key}") from e

    async def delete(self, collection: str, key: str) -> bool:
        try:
            result = await self._db[collection].delete_one({"_id": key})
            return result.deleted_count == 1
        except PyMongoError as e:
            logger.bind(collection=collection, key=key).exception("Database error deleting document.")
            raise RepositoryError(f"Error deleting {collection}/{key}") from e

    async def find(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
        sort: Optional[SortSpec] = None,
        limit: int = 0,
        skip: int = 0,
    ) -> List[Dict[str, Any]]:
        try:
            cursor = self._db[collection].find(filters or {})
            if sort:
                cursor = cursor.sort(sort)
            if skip:
                cursor = cursor.skip(skip)
            if limit:
                cursor = cursor.limit(limit)
            return await cursor.to_list(length=limit or None)
        except PyMongoError as e:
            logger.bind(collection=collection, filters=filters).exception("Database error querying documents.")
            raise RepositoryError(f"Error querying {collection}") from e

    async def count(self, collection: str, filters: Optional[Dict[str, Any]] = None) -> int:
        try:
            return await self._db[collection].count_documents(filters or {})
        except PyMongoError as e:
            logger.bind(collection=collection).exception("Database error counting documents.")
            raise RepositoryError(f"Error counting {collection}") from e

    async def commit(self, batch: WriteBatch) -> None:
        if not batch.operations:
            return
        log = logger.bind(batch_size=len(batch))
        try:
            async with await self._db.client.start_session() as session:
                async with session.start_transaction():
                    for op in batch.operations:
                        coll = self._db[op.collection]
                        if op.kind == "create":
                            try:
                                await coll.insert_one({**(op.data or {}), "_id": op.key}, session=session)
                            except DuplicateKeyError as e:
                                raise DocumentExistsError(op.collection, op.key) from e
                        elif op.kind == "update":
                            result = await coll.update_one(
                                {"_id": op.key, **op.update.expect}, op.update.to_mongo(), session=session
                            )
                            if result.matched_count == 0:
                                raise PreconditionFailedError(op.collection, op.key)
                        else:
                            result = await coll.delete_one({"_id": op.key, **op.expect}, session=session)
                            if result.deleted_count == 0:
                                raise PreconditionFailedError(op.collection, op.key)
            log.debug("Batch committed.")
        except (PreconditionFailedError, DocumentExistsError):
            log.info("Batch aborted: precondition not met.")
            raise
        except PyMongoError as e:
            log.exception("Database error committing batch.")
            raise RepositoryError("Error committing batch") from e

    async def ping(self) -> bool:
        try:
            await self._db.command("ping")
            return True
        except PyMongoError:
            logger.exception("Status Check: DB ping failed.")
            return False
