"""
Account service.

Opens accounts and fixes their place in the referral forest. The
referred_by link is set once here and never changed afterwards.
"""

import secrets

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.account import Account
from app.repositories.account_repository import AccountRepository
from app.services.base_service import BaseService, transaction
from app.services.referral.referral_graph import ReferralGraph
from app.utils.exceptions import UnknownAccountError


REFERRAL_CODE_BYTES = 6


class AccountService(BaseService):
    """Account creation and lookup."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize account service."""
        super().__init__(session)
        self.account_repo = AccountRepository(session)
        self.graph = ReferralGraph(session)

    @transaction
    async def open_account(
        self,
        username: str | None = None,
        referral_code: str | None = None,
        referred_by_id: int | None = None,
    ) -> Account:
        """
        Create an account, optionally below an existing referrer.

        Args:
            username: Display name
            referral_code: Code of the inviting account
            referred_by_id: Inviting account id (used if no code given)

        Returns:
            Created account

        Raises:
            UnknownAccountError: referral code or referrer not found
        """
        if referral_code:
            referrer = await self.account_repo.get_by_referral_code(
                referral_code
            )
            if referrer is None:
                self.logger.warning(
                    "Unknown referral code",
                    extra={"referral_code": referral_code},
                )
                raise UnknownAccountError(referral_code)
            referred_by_id = referrer.id

        if referred_by_id is not None:
            await self.graph.validate_new_link(referred_by_id)

        account = await self.account_repo.create(
            username=username,
            referral_code=await self._generate_referral_code(),
            referred_by_id=referred_by_id,
        )

        self.logger.info(
            "Account opened",
            extra={
                "account_id": account.id,
                "referred_by_id": referred_by_id,
            },
        )

        return account

    async def get_by_referral_code(self, referral_code: str) -> Account | None:
        """Find an account by its referral code."""
        return await self.account_repo.get_by_referral_code(referral_code)

    async def _generate_referral_code(self) -> str:
        """Random referral code not used by any account yet."""
        while True:
            code = secrets.token_hex(REFERRAL_CODE_BYTES)
            if not await self.account_repo.exists(referral_code=code):
                return code
