"""
Integration tests.

End-to-end fetch scenarios through the FireFerret client, with in-memory
stand-ins for Redis and MongoDB.
"""
