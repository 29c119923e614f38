from __future__ import annotations

import uuid

from taskledger.domain.common.ports import IdGenerator


class UuidGenerator(IdGenerator):
    """Task uuids in canonical 36-char form, used when Create gets an empty uuid."""

    def new_id(self) -> str:
        return str(uuid.uuid4())
