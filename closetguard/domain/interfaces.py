from __future__ import annotations
from typing import Protocol, runtime_checkable


@runtime_checkable
class ReportGenerator(Protocol):
    async def generate(self, prompt: str, system_instruction: str) -> str:
        """Return prose for `prompt`. May raise on transport/service faults."""
        ...
