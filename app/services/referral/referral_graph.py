"""
Referral graph module.

Read-only view of the "referred by" relationship between accounts.
Chains are walked with a depth-bounded recursive CTE, so a corrupted
(cyclic) chain can never make the walk run forever.
"""

from dataclasses import dataclass

from loguru import logger
from sqlalchemy import Integer, func, literal, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from app.models.account import Account
from app.repositories.account_repository import AccountRepository
from app.services.referral.config import REFERRAL_MAX_DEPTH
from app.utils.exceptions import ChainCorruptedError, UnknownAccountError


@dataclass(frozen=True)
class ReferralAncestor:
    """One ancestor in a referral chain (depth 1 = direct referrer)."""

    depth: int
    account_id: int


class ReferralGraph:
    """Answers ancestor and descendant questions about the referral forest."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize referral graph."""
        self.session = session
        self.account_repo = AccountRepository(session)

    async def ancestors_of(
        self, account_id: int, max_depth: int = REFERRAL_MAX_DEPTH
    ) -> list[ReferralAncestor]:
        """
        Get the referral chain above an account, nearest first.

        Args:
            account_id: Account whose ancestors are requested
            max_depth: Maximum number of levels to return

        Returns:
            Ancestors ordered by depth; shorter than max_depth for
            shallow chains, empty for top-of-chain accounts

        Raises:
            ChainCorruptedError: an account appears twice in the chain;
                the error carries the valid prefix in ``chain``
        """
        if max_depth < 1:
            return []

        chain_start = (
            select(
                Account.id.label("account_id"),
                Account.referred_by_id.label("referred_by_id"),
                literal(0, Integer).label("depth"),
            )
            .where(Account.id == account_id)
            .cte("referral_chain", recursive=True)
        )
        previous = chain_start.alias("previous")
        referrer = aliased(Account, name="referrer")
        chain = chain_start.union_all(
            select(
                referrer.id,
                referrer.referred_by_id,
                previous.c.depth + 1,
            )
            .where(referrer.id == previous.c.referred_by_id)
            .where(previous.c.depth < max_depth)
        )

        stmt = (
            select(chain.c.account_id, chain.c.depth)
            .where(chain.c.depth > 0)
            .order_by(chain.c.depth)
        )
        rows = (await self.session.execute(stmt)).all()

        ancestors: list[ReferralAncestor] = []
        seen = {account_id}
        for row in rows:
            if row.account_id in seen:
                logger.error(
                    "Referral chain corrupted: cycle detected",
                    extra={
                        "account_id": account_id,
                        "repeated_account_id": row.account_id,
                        "depth": row.depth,
                        "valid_prefix": [a.account_id for a in ancestors],
                    },
                )
                raise ChainCorruptedError(account_id, row.account_id, ancestors)
            seen.add(row.account_id)
            ancestors.append(
                ReferralAncestor(depth=int(row.depth), account_id=row.account_id)
            )

        logger.debug(
            "Referral chain retrieved",
            extra={
                "account_id": account_id,
                "max_depth": max_depth,
                "chain_length": len(ancestors),
            },
        )

        return ancestors

    async def validate_new_link(self, referrer_id: int) -> Account:
        """
        Check that a referrer can be attached to a newly created account.

        A brand-new account has no descendants, so linking it below an
        existing account can never close a cycle.

        Args:
            referrer_id: Proposed direct referrer

        Returns:
            Referrer account

        Raises:
            UnknownAccountError: referrer does not exist or is inactive
        """
        referrer = await self.account_repo.get_by_id(referrer_id)
        if referrer is None or not referrer.is_active:
            raise UnknownAccountError(referrer_id)
        return referrer

    async def direct_referrals(self, account_id: int) -> list[Account]:
        """
        Get accounts directly referred by an account.

        Args:
            account_id: Referrer account ID

        Returns:
            Level 1 referrals ordered by id
        """
        return await self.account_repo.get_direct_referrals(account_id)

    async def level_counts(
        self, account_id: int, max_depth: int = REFERRAL_MAX_DEPTH
    ) -> dict[int, int]:
        """
        Count descendants of an account per referral level in a single query.

        Args:
            account_id: Referrer account ID
            max_depth: Deepest level to count

        Returns:
            Dict mapping level to count, every level 1..max_depth present
        """
        tree_start = (
            select(
                Account.id.label("account_id"),
                literal(1, Integer).label("depth"),
            )
            .where(Account.referred_by_id == account_id)
            .cte("referral_tree", recursive=True)
        )
        parent = tree_start.alias("parent")
        child = aliased(Account, name="child")
        tree = tree_start.union_all(
            select(child.id, parent.c.depth + 1)
            .where(child.referred_by_id == parent.c.account_id)
            .where(parent.c.depth < max_depth)
        )

        stmt = (
            select(tree.c.depth, func.count().label("count"))
            .group_by(tree.c.depth)
        )
        rows = (await self.session.execute(stmt)).all()

        counts = {level: 0 for level in range(1, max_depth + 1)}
        for row in rows:
            counts[int(row.depth)] = row.count

        return counts
