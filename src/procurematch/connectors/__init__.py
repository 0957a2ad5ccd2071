"""Connectors package — document store integrations."""
from procurematch.connectors.base import BaseDocumentStore
from procurematch.connectors.file_connector import FileDocumentStore
from procurematch.connectors.memory import InMemoryDocumentStore

__all__ = [
    "BaseDocumentStore",
    "FileDocumentStore",
    "InMemoryDocumentStore",
]
