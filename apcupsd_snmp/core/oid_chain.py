"""
OID successor chain used to answer GETNEXT.
"""

from typing import Dict, Iterable, Iterator, Optional

from .models import CHAIN_START, OID


def build_chain(oids: Iterable[OID]) -> Dict[OID, OID]:
    """
    Link the given OIDs in lexicographic order.

    ``CHAIN_START`` maps to the smallest OID, every other OID to the next
    larger one; the largest OID has no entry. Duplicates are collapsed.
    """
    chain: Dict[OID, OID] = {}
    prev = CHAIN_START
    for oid in sorted(set(oids)):
        chain[prev] = oid
        prev = oid
    return chain


def next_oid(chain: Dict[OID, OID], oid: OID) -> Optional[OID]:
    """First OID in the chain strictly greater than ``oid``, or None."""
    candidate = chain.get(CHAIN_START)
    while candidate is not None and candidate <= oid:
        candidate = chain.get(candidate)
    return candidate


def iter_chain(chain: Dict[OID, OID]) -> Iterator[OID]:
    """Walk the chain from the start, in increasing OID order."""
    candidate = chain.get(CHAIN_START)
    while candidate is not None:
        yield candidate
        candidate = chain.get(candidate)
