"""
Document Store Module

MongoDB driver implementing the DocumentStore protocol.
"""

from .mongo_client import MongoDocumentStore

__all__ = ["MongoDocumentStore"]
