"""Advisory editing leases.

A lease records that a user is editing a document until it expires. Leases
never exclude anyone: claiming a document that others hold succeeds and
simply reports the other holders so a UI can warn.
"""

import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional


@dataclass
class EditingLease:
    """Time-boxed claim on a document."""
    document_id: str
    owner_id: str
    owner_name: str
    expires_at: float

    def expired(self, now: float) -> bool:
        return now >= self.expires_at


class LeaseRegistry:
    """Track who currently claims to be editing which document."""

    def __init__(self, ttl: float = 60.0, clock: Optional[Callable[[], float]] = None):
        self.ttl = ttl
        self.clock = clock or time.monotonic
        self._leases: Dict[str, Dict[str, EditingLease]] = {}

    def claim(self, document_id: str, owner_id: str, owner_name: str = "") -> List[EditingLease]:
        """Claim or renew a lease; returns the leases of other active holders."""
        now = self.clock()
        holders = self._leases.setdefault(document_id, {})
        holders[owner_id] = EditingLease(
            document_id=document_id,
            owner_id=owner_id,
            owner_name=owner_name,
            expires_at=now + self.ttl,
        )
        return [lease for lease in self.holders(document_id) if lease.owner_id != owner_id]

    def renew(self, document_id: str, owner_id: str) -> bool:
        """Heartbeat; False when the lease is gone or already expired."""
        lease = self._leases.get(document_id, {}).get(owner_id)
        now = self.clock()
        if lease is None or lease.expired(now):
            return False
        lease.expires_at = now + self.ttl
        return True

    def release(self, document_id: str, owner_id: str):
        holders = self._leases.get(document_id)
        if holders is None:
            return
        holders.pop(owner_id, None)
        if not holders:
            del self._leases[document_id]

    def release_owner(self, owner_id: str):
        for document_id in list(self._leases):
            self.release(document_id, owner_id)

    def holders(self, document_id: str) -> List[EditingLease]:
        """Unexpired leases on a document, expired ones are pruned."""
        now = self.clock()
        holders = self._leases.get(document_id, {})
        for owner_id in [o for o, lease in holders.items() if lease.expired(now)]:
            del holders[owner_id]
        if not holders:
            self._leases.pop(document_id, None)
        return list(holders.values())

    def documents(self) -> List[str]:
        return list(self._leases)
