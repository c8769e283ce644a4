"""
Infrastructure Layer

Drivers for the two external stores:

- **cache**: Redis (KeyValueStore)
- **document_store**: MongoDB (DocumentStore)
"""
