# backend/app/services/slots/__init__.py
"""
Slots calculation module.

calculator:   candidate appointment starts for one operating window
availability: SlotAllocator, busy intervals and travel gaps per staff calendar
"""

from .config import AllocatorConfig, get_allocator_config
from .calculator import Candidate, iter_candidates
from .availability import Slot, SlotAllocator

__all__ = [
    "AllocatorConfig",
    "get_allocator_config",
    "Candidate",
    "iter_candidates",
    "Slot",
    "SlotAllocator",
]
