"""
Public identifier generation.

Public ids are storage-independent and generated once per entity at create
time. Storage enforces uniqueness with a unique index.
"""

from __future__ import annotations
from uuid import uuid4

from .value_objects import EntityKind


class PublicIdGenerator:
    """Produces ``<prefix>_<32 hex chars>`` identifiers."""

    def generate(self, kind: EntityKind) -> str:
        return f"{kind.public_id_prefix}_{uuid4().hex}"
