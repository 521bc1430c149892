"""
Database operations - Generic CRUD functions for all collections
"""
from typing import List, Dict, Optional, Any
from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ReturnDocument
from app.config.database import db_config
from app.utils.helpers import utcnow


def session_kwargs(session) -> Dict[str, Any]:
    """Keyword arguments that attach a driver call to a transaction session"""
    return {"session": session} if session is not None else {}


def to_object_id(doc_id: Any) -> Optional[ObjectId]:
    """Parse an id string, returning None for malformed ids"""
    if isinstance(doc_id, ObjectId):
        return doc_id
    try:
        return ObjectId(str(doc_id))
    except (InvalidId, TypeError):
        return None


class DBOperations:
    """Generic database operations for MongoDB collections"""

    @staticmethod
    async def get_all(collection_name: str, filter_query: Dict = None, skip: int = 0, limit: int = 100,
                      sort: List = None, session=None) -> List[Dict]:
        """Get all documents from a collection with optional filtering"""
        collection = db_config.get_collection(collection_name)
        filter_query = filter_query or {}
        cursor = collection.find(filter_query, **session_kwargs(session))
        if sort:
            cursor = cursor.sort(sort)
        cursor = cursor.skip(skip).limit(limit)
        documents = await cursor.to_list(length=limit)
        return documents

    @staticmethod
    async def get_by_id(collection_name: str, doc_id: str, session=None) -> Optional[Dict]:
        """Get a single document by ID"""
        oid = to_object_id(doc_id)
        if oid is None:
            return None
        collection = db_config.get_collection(collection_name)
        return await collection.find_one({"_id": oid}, **session_kwargs(session))

    @staticmethod
    async def get_one(collection_name: str, filter_query: Dict, session=None) -> Optional[Dict]:
        """Get a single document by filter query"""
        collection = db_config.get_collection(collection_name)
        document = await collection.find_one(filter_query, **session_kwargs(session))
        return document

    @staticmethod
    async def create(collection_name: str, document: Dict, session=None) -> Dict:
        """Create a new document"""
        collection = db_config.get_collection(collection_name)
        now = utcnow()
        document["created_at"] = now
        document["updated_at"] = now
        result = await collection.insert_one(document, **session_kwargs(session))
        document["_id"] = result.inserted_id
        return document

    @staticmethod
    async def update(collection_name: str, doc_id: str, update_data: Dict, session=None) -> Optional[Dict]:
        """Update a document by ID"""
        oid = to_object_id(doc_id)
        if oid is None:
            return None
        collection = db_config.get_collection(collection_name)
        update_data["updated_at"] = utcnow()
        result = await collection.find_one_and_update(
            {"_id": oid},
            {"$set": update_data},
            return_document=ReturnDocument.AFTER,
            **session_kwargs(session)
        )
        return result

    @staticmethod
    async def update_many(collection_name: str, filter_query: Dict, update_data: Dict, session=None) -> int:
        """Set fields on every matching document"""
        collection = db_config.get_collection(collection_name)
        update_data["updated_at"] = utcnow()
        result = await collection.update_many(filter_query, {"$set": update_data}, **session_kwargs(session))
        return result.modified_count

    @staticmethod
    async def delete(collection_name: str, doc_id: str, session=None) -> bool:
        """Delete a document by ID"""
        oid = to_object_id(doc_id)
        if oid is None:
            return False
        collection = db_config.get_collection(collection_name)
        result = await collection.delete_one({"_id": oid}, **session_kwargs(session))
        return result.deleted_count > 0

    @staticmethod
    async def count(collection_name: str, filter_query: Dict = None, session=None) -> int:
        """Count documents in a collection"""
        collection = db_config.get_collection(collection_name)
        filter_query = filter_query or {}
        count = await collection.count_documents(filter_query, **session_kwargs(session))
        return count


db_ops = DBOperations()
