"""
Repository Layer - Data Access

One repository per collection. Repositories speak the schema models, never raw
documents, and stamp the audit fields on every write.
"""
import logging
from typing import Dict, Generic, Iterable, List, Optional, Type, TypeVar

from pymongo.database import Database

from config import settings
from database import serialize_doc, to_bson, to_object_id
from errors import EntityNotFoundError
from pagination import Page, PageRequest, count_and_fetch
from schemas import AUDIT_FIELDS, Category, Customer, Order, Product, utcnow

logger = logging.getLogger(__name__)

M = TypeVar("M", Category, Customer, Product, Order)


class MongoRepository(Generic[M]):
    """
    Base repository over a single collection

    Subclasses set collection_name and model, and list any display-only model
    fields in derived_fields so they are never persisted.
    """

    collection_name: str
    model: Type[M]
    derived_fields: frozenset = frozenset()

    def __init__(self, db: Database, audit_user: Optional[str] = None):
        self.collection = db[self.collection_name]
        self.audit_user = audit_user or settings.AUDIT_USER

    @property
    def sortable_fields(self) -> Dict[str, str]:
        """Map of model field name -> document field name"""
        fields = {name: name for name in self.model.model_fields if name not in self.derived_fields}
        fields["id"] = "_id"
        return fields

    def _to_model(self, doc: dict) -> M:
        return self.model.model_validate(serialize_doc(doc))

    def _to_document(self, entity: M) -> dict:
        data = entity.model_dump(exclude={"id"} | self.derived_fields | AUDIT_FIELDS)
        return to_bson(data)

    def save(self, entity: M) -> M:
        """
        Insert entity when it has no id, replace the stored document otherwise

        Returns:
            The stored entity, with id and audit fields set

        Raises:
            EntityNotFoundError: entity has an id but no stored document
        """
        now = utcnow()
        document = self._to_document(entity)
        document["last_modified_by"] = self.audit_user
        document["last_modified_date"] = now

        if entity.id is None:
            document["created_by"] = self.audit_user
            document["created_date"] = now
            result = self.collection.insert_one(document)
            document["_id"] = result.inserted_id
            return self._to_model(document)

        oid = to_object_id(entity.id)
        if oid is None:
            raise ValueError(f"Invalid {self.collection_name} id: {entity.id}")

        existing = self.collection.find_one({"_id": oid}, {"created_by": 1, "created_date": 1})
        if existing is None:
            raise EntityNotFoundError(self.collection_name, entity.id)
        document["created_by"] = existing.get("created_by")
        document["created_date"] = existing.get("created_date")

        document["_id"] = oid
        result = self.collection.replace_one({"_id": oid}, document, upsert=False)
        if result.matched_count == 0:
            # removed between the lookup and the write
            raise EntityNotFoundError(self.collection_name, entity.id)
        return self._to_model(document)

    def find_by_id(self, entity_id: Optional[str]) -> Optional[M]:
        oid = to_object_id(entity_id) if entity_id is not None else None
        if oid is None:
            return None

        doc = self.collection.find_one({"_id": oid})
        if not doc:
            return None
        return self._to_model(doc)

    def find_all(self, page_request: PageRequest) -> Page[M]:
        return self.find_all_where({}, page_request)

    def find_all_where(self, query: dict, page_request: PageRequest) -> Page[M]:
        return count_and_fetch(self.collection, query, page_request).map(self._to_model)

    def count(self, query: dict) -> int:
        return self.collection.count_documents(query)

    def find(self, query: dict, page_request: PageRequest) -> List[M]:
        """Fetch one page of query without counting"""
        cursor = self.collection.find(query)
        if page_request.sort:
            cursor = cursor.sort(page_request.sort)
        cursor = cursor.skip(page_request.offset).limit(page_request.size)
        return [self._to_model(doc) for doc in cursor]

    def find_all_unpaged(self) -> List[M]:
        return [self._to_model(doc) for doc in self.collection.find({})]

    def delete_by_id(self, entity_id: str) -> None:
        oid = to_object_id(entity_id)
        if oid is None:
            return
        self.collection.delete_one({"_id": oid})

    def delete_all_by_id(self, entity_ids: Iterable[str]) -> None:
        oids = [oid for oid in (to_object_id(i) for i in entity_ids) if oid is not None]
        if not oids:
            return
        result = self.collection.delete_many({"_id": {"$in": oids}})
        logger.debug("Deleted %s of %s %s documents", result.deleted_count, len(oids), self.collection_name)


class ActiveRepository(MongoRepository[M]):
    """Repository for collections with an "active" flag"""

    def find_all_active(self, page_request: PageRequest) -> Page[M]:
        return self.find_all_where({"active": True}, page_request)


class CategoryRepository(ActiveRepository[Category]):
    collection_name = "category"
    model = Category


class CustomerRepository(ActiveRepository[Customer]):
    collection_name = "customer"
    model = Customer


class ProductRepository(ActiveRepository[Product]):
    collection_name = "product"
    model = Product
    derived_fields = frozenset({"category_name"})


class OrderRepository(MongoRepository[Order]):
    collection_name = "order"
    model = Order
    derived_fields = frozenset({"customer_name"})

    def find_all_by_customer_id(self, customer_id: str, page_request: PageRequest) -> Page[Order]:
        return self.find_all_where({"customer_id": customer_id}, page_request)
