"""Per-user block lists."""

from __future__ import annotations

from nekonymous.schemas.user import UserProfile


class BlockListPolicy:
    """Decide and record who may reach whom.

    Only the blocker's list is ever written. Every check is made from the
    blocker's side: before A can reach B the policy looks at B's list.
    """

    @staticmethod
    def is_blocked(owner: UserProfile | None, other_id: int) -> bool:
        """Return True if ``owner`` has blocked ``other_id``."""
        return owner is not None and other_id in owner.block_list

    @staticmethod
    def block(owner: UserProfile, other_id: int) -> bool:
        """Add ``other_id`` to the owner's list; False if already present."""
        if other_id in owner.block_list:
            return False
        owner.block_list.append(other_id)
        return True

    @staticmethod
    def unblock(owner: UserProfile, other_id: int) -> bool:
        """Remove ``other_id`` from the owner's list; False if it was not there."""
        if other_id not in owner.block_list:
            return False
        owner.block_list = [blocked for blocked in owner.block_list if blocked != other_id]
        return True
