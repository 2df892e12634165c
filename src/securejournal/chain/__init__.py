"""
Hash-chained audit log: canonical hashing, migration, verification, export.
"""

from .audit_chain import AuditChain
from .canonical import CANON_FIELDS, canon, compute_block_hash
from .evidence import EvidenceReport, verify_evidence, verify_evidence_text
from .migration import ensure_migrated, is_legacy, rebuild_chain
from .models import (
    AuditBlock,
    BlockCheck,
    ChainExport,
    ChainVerification,
    ExportResult,
)
from .verify import verify_blocks

__all__ = [
    "AuditChain",
    "AuditBlock",
    "BlockCheck",
    "ChainExport",
    "ChainVerification",
    "ExportResult",
    "EvidenceReport",
    "CANON_FIELDS",
    "canon",
    "compute_block_hash",
    "ensure_migrated",
    "is_legacy",
    "rebuild_chain",
    "verify_blocks",
    "verify_evidence",
    "verify_evidence_text",
]
