from app.services.numbering.allocator import (
    AllocatedNumber,
    NumberFormat,
    SequenceAllocator,
    format_document_number,
)

__all__ = [
    "AllocatedNumber",
    "NumberFormat",
    "SequenceAllocator",
    "format_document_number",
]
