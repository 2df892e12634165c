"""
Chain walk shared by live verification and offline evidence checks.
"""

from __future__ import annotations

from collections.abc import Iterable

from .models import AuditBlock, BlockCheck, ChainVerification


def verify_blocks(blocks: Iterable[AuditBlock]) -> ChainVerification:
    """Verify blocks given oldest-first.

    A block breaks when its ``prevHash`` differs from the previous block's
    *stored* ``blockHash`` or when its stored hash differs from the
    recomputed one. Linking to stored hashes means one altered block is
    reported once instead of invalidating everything after it.
    """
    prev: str | None = None
    breaks = 0
    details: list[BlockCheck] = []
    for block in blocks:
        computed = block.compute_hash()
        prev_matches = (block.prev_hash or "") == (prev or "")
        block_matches = (block.block_hash or "") == computed
        if not (prev_matches and block_matches):
            breaks += 1
        details.append(
            BlockCheck(
                seq=block.seq,
                computed=computed,
                stored=block.block_hash or None,
                prev_stored=block.prev_hash or None,
                prev_matches=prev_matches,
                block_matches=block_matches,
            )
        )
        prev = block.block_hash or computed
    return ChainVerification(ok=breaks == 0, breaks=breaks, head=prev, details=details)
