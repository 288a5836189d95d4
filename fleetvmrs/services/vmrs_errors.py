from __future__ import annotations


class VmrsError(RuntimeError):
    """Base exception for the VMRS suggestion engine."""


class PartNotFoundError(VmrsError):
    def __init__(self, part_id: int) -> None:
        super().__init__(f"Part {part_id} not found")
        self.part_id = part_id


class DictionaryEntryNotFoundError(VmrsError):
    def __init__(self, entry_id: int) -> None:
        super().__init__(f"VMRS dictionary entry {entry_id} not found")
        self.entry_id = entry_id
