"""Infrastructure layer — locked files, the index, and the record store.

This layer depends on stdlib, pydantic and the domain models it persists.
It must never import from services, commands, or output.
"""
