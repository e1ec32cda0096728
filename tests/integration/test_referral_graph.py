"""Integration tests for ReferralGraph chain walks."""

import pytest
from sqlalchemy import update

from app.models.account import Account
from app.services.referral import ReferralAncestor, ReferralGraph
from app.utils.exceptions import ChainCorruptedError, UnknownAccountError


class TestAncestors:
    """Test ReferralGraph.ancestors_of."""

    @pytest.mark.asyncio
    async def test_chain_nearest_first(self, db_session, chain_factory):
        """Test depth 1 is the direct referrer."""
        u1, u2, u3 = await chain_factory(3)

        ancestors = await ReferralGraph(db_session).ancestors_of(u1)

        assert ancestors == [
            ReferralAncestor(depth=1, account_id=u2),
            ReferralAncestor(depth=2, account_id=u3),
        ]

    @pytest.mark.asyncio
    async def test_top_of_chain(self, db_session, account_factory):
        """Test an account without referrer has no ancestors."""
        account_id = await account_factory()

        assert await ReferralGraph(db_session).ancestors_of(account_id) == []

    @pytest.mark.asyncio
    async def test_unknown_account(self, db_session):
        """Test a missing account has no ancestors."""
        assert await ReferralGraph(db_session).ancestors_of(999) == []

    @pytest.mark.asyncio
    async def test_depth_limited_to_ten(self, db_session, chain_factory):
        """Test only the nearest ten ancestors of a 13-deep chain are returned."""
        chain = await chain_factory(13)

        ancestors = await ReferralGraph(db_session).ancestors_of(chain[0])

        assert len(ancestors) == 10
        assert [a.account_id for a in ancestors] == chain[1:11]
        assert ancestors[-1].depth == 10

    @pytest.mark.asyncio
    async def test_custom_depth(self, db_session, chain_factory):
        """Test a smaller max_depth truncates the walk."""
        chain = await chain_factory(5)

        ancestors = await ReferralGraph(db_session).ancestors_of(chain[0], 2)

        assert [a.account_id for a in ancestors] == chain[1:3]

    @pytest.mark.asyncio
    async def test_cycle_detected(self, db_session, chain_factory):
        """Test a corrupted cyclic chain stops with the valid prefix."""
        u1, u2, u3 = await chain_factory(3)
        # Corrupt the forest: the top of the chain now points back at u1
        await db_session.execute(
            update(Account).where(Account.id == u3).values(referred_by_id=u1)
        )
        await db_session.commit()

        with pytest.raises(ChainCorruptedError) as exc_info:
            await ReferralGraph(db_session).ancestors_of(u1)

        assert exc_info.value.repeated_account_id == u1
        assert [a.account_id for a in exc_info.value.chain] == [u2, u3]


class TestLinksAndCounts:
    """Test link validation and downline queries."""

    @pytest.mark.asyncio
    async def test_validate_new_link(self, db_session, account_factory):
        """Test an existing active referrer is accepted."""
        referrer_id = await account_factory()

        referrer = await ReferralGraph(db_session).validate_new_link(referrer_id)

        assert referrer.id == referrer_id

    @pytest.mark.asyncio
    async def test_validate_inactive_referrer(self, db_session, account_factory):
        """Test inactive or missing referrers are rejected."""
        inactive_id = await account_factory(is_active=False)
        graph = ReferralGraph(db_session)

        with pytest.raises(UnknownAccountError):
            await graph.validate_new_link(inactive_id)
        with pytest.raises(UnknownAccountError):
            await graph.validate_new_link(999)

    @pytest.mark.asyncio
    async def test_level_counts(self, db_session, account_factory):
        """Test descendants are counted per level."""
        root = await account_factory()
        child_a = await account_factory(referred_by_id=root)
        await account_factory(referred_by_id=root)
        await account_factory(referred_by_id=child_a)

        graph = ReferralGraph(db_session)
        counts = await graph.level_counts(root, max_depth=3)
        direct = await graph.direct_referrals(root)

        assert counts == {1: 2, 2: 1, 3: 0}
        assert len(direct) == 2
