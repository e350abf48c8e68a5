from .api import (
    SObjectName,
    delete_collection,
    delete_one,
    insert_collection,
    insert_one,
    query,
    query_iter,
    update_collection,
    update_one,
    upsert_collection,
    upsert_one,
)

__all__ = [
    "SObjectName",
    "delete_collection",
    "delete_one",
    "insert_collection",
    "insert_one",
    "query",
    "query_iter",
    "update_collection",
    "update_one",
    "upsert_collection",
    "upsert_one",
]
