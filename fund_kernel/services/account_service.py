"""
AccountService -- the chart-of-accounts registry.

Responsibility:
    Creates, reads, updates and deactivates the accounts of one
    organization, and seeds the canonical nonprofit chart so the donation
    auto-poster always finds its well-known accounts.

Architecture position:
    Kernel > Services -- imperative shell.  Leaf dependency of the journal
    engine, the auto-poster and the statement generator.

Invariants enforced:
    - (organization_id, account_number) is unique.  Checked up front and
      backed by uq_account_org_number; a lost race surfaces as
      DuplicateAccountNumberError, never as a raw IntegrityError.
    - normal_balance is derived from account_type when omitted and never
      changes afterwards; statement_type always agrees with account_type.
    - statement_section is one of the sections allowed for the type.
    - Accounts are deactivated, never deleted.

Failure modes:
    - DuplicateAccountNumberError: number already used in the organization.
    - ValidationError: contradictory statement type or misplaced section.
    - AccountNotFoundError: id unknown or owned by another organization.

Audit relevance:
    account_created, account_updated, account_deactivated and
    chart_seeded are logged with the acting user.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fund_kernel.domain.clock import Clock
from fund_kernel.domain.dtos import AccountInfo
from fund_kernel.exceptions import (
    AccountNotFoundError,
    DuplicateAccountNumberError,
    ValidationError,
)
from fund_kernel.logging_config import get_logger
from fund_kernel.models.account import (
    DEFAULT_SECTION_BY_TYPE,
    NORMAL_BALANCE_BY_TYPE,
    SECTIONS_BY_TYPE,
    STATEMENT_TYPE_BY_TYPE,
    Account,
    AccountType,
    NetAssetClass,
    NormalBalance,
    StatementSection,
    StatementType,
)
from fund_kernel.services.base import BaseService

if TYPE_CHECKING:
    from fund_config.schema import ChartSeed

logger = get_logger("services.accounts")

_UPDATABLE_FIELDS = frozenset({
    "name",
    "description",
    "category",
    "statement_section",
    "statement_order",
    "net_asset_class",
})


class AccountService(BaseService):
    """
    Chart-of-accounts registry for one or more organizations.

    Contract:
        Every method takes the organization id explicitly; an account id
        from another organization is treated as not found.

    Guarantees:
        - All public methods return frozen AccountInfo DTOs.
        - get_accounts() defaults to active accounts only.

    Non-goals:
        - No reactivation; deactivation is the only lifecycle move.
        - No account hierarchy.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session, clock)

    # Reads

    def _get_orm(self, organization_id: int, account_id: UUID) -> Account:
        account = self.session.get(Account, account_id)
        if account is None or account.organization_id != organization_id:
            raise AccountNotFoundError(str(account_id))
        return account

    def _get_by_number_orm(self, organization_id: int, account_number: str) -> Account | None:
        return self.session.execute(
            select(Account).where(
                Account.organization_id == organization_id,
                Account.account_number == account_number,
            )
        ).scalar_one_or_none()

    def get_account(self, organization_id: int, account_id: UUID) -> AccountInfo:
        """
        Raises:
            AccountNotFoundError: unknown id or another organization's account.
        """
        return AccountInfo.from_model(self._get_orm(organization_id, account_id))

    def get_account_by_number(
        self, organization_id: int, account_number: str,
    ) -> AccountInfo | None:
        account = self._get_by_number_orm(organization_id, account_number)
        return AccountInfo.from_model(account) if account else None

    def get_accounts(
        self,
        organization_id: int,
        include_inactive: bool = False,
        account_type: AccountType | None = None,
    ) -> list[AccountInfo]:
        """Accounts of the organization ordered by account number."""
        query = select(Account).where(Account.organization_id == organization_id)
        if not include_inactive:
            query = query.where(Account.is_active.is_(True))
        if account_type is not None:
            query = query.where(Account.account_type == AccountType(account_type).value)
        query = query.order_by(Account.account_number)
        return [AccountInfo.from_model(a) for a in self.session.execute(query).scalars()]

    # Writes

    def create_account(
        self,
        organization_id: int,
        account_number: str,
        name: str,
        account_type: AccountType,
        actor: str,
        *,
        category: str | None = None,
        description: str | None = None,
        statement_type: StatementType | None = None,
        statement_section: StatementSection | None = None,
        statement_order: int = 0,
        normal_balance: NormalBalance | None = None,
        net_asset_class: NetAssetClass | None = None,
    ) -> AccountInfo:
        """
        Create an account in the organization's chart.

        Preconditions:
            - account_number and name are non-empty.

        Postconditions:
            - Account is flushed with is_active=True.
            - normal_balance defaults from the account type.

        Raises:
            DuplicateAccountNumberError: number already used.
            ValidationError: empty number/name, contradictory statement
                type, or a section not allowed for the type.
        """
        account_type = AccountType(account_type)
        account_number = (account_number or "").strip()
        if not account_number or not (name or "").strip():
            raise ValidationError("Account number and name are required")

        derived_statement = STATEMENT_TYPE_BY_TYPE[account_type]
        if statement_type is not None and StatementType(statement_type) != derived_statement:
            logger.warning(
                "account_statement_type_rejected",
                extra={
                    "account_number": account_number,
                    "account_type": account_type.value,
                    "statement_type": StatementType(statement_type).value,
                },
            )
            raise ValidationError(
                f"{account_type.value} accounts belong on the "
                f"{derived_statement.value} statement, not {StatementType(statement_type).value}"
            )

        section = StatementSection(statement_section or DEFAULT_SECTION_BY_TYPE[account_type])
        self._check_section(account_type, section)

        if self._get_by_number_orm(organization_id, account_number) is not None:
            raise DuplicateAccountNumberError(organization_id, account_number)

        account = Account(
            organization_id=organization_id,
            account_number=account_number,
            name=name.strip(),
            description=description,
            account_type=account_type.value,
            category=category,
            statement_type=derived_statement.value,
            statement_section=section.value,
            statement_order=statement_order,
            normal_balance=NormalBalance(
                normal_balance or NORMAL_BALANCE_BY_TYPE[account_type]
            ).value,
            net_asset_class=NetAssetClass(net_asset_class).value if net_asset_class else None,
            is_active=True,
            created_by=actor,
        )

        savepoint = self.session.begin_nested()
        try:
            self.session.add(account)
            self.session.flush()
            savepoint.commit()
        except IntegrityError:
            savepoint.rollback()
            raise DuplicateAccountNumberError(organization_id, account_number)

        logger.info(
            "account_created",
            extra={
                "organization_id": organization_id,
                "account_id": str(account.id),
                "account_number": account_number,
                "account_type": account_type.value,
                "actor_id": actor,
            },
        )
        return AccountInfo.from_model(account)

    def update_account(
        self,
        organization_id: int,
        account_id: UUID,
        actor: str,
        **changes,
    ) -> AccountInfo:
        """
        Update presentation fields of an account.

        Only name, description, category, statement_section,
        statement_order and net_asset_class may change.

        Raises:
            AccountNotFoundError: unknown account.
            ValidationError: a non-updatable field was supplied, or the new
                section is not allowed for the account type.
        """
        illegal = sorted(set(changes) - _UPDATABLE_FIELDS)
        if illegal:
            raise ValidationError(f"Account fields cannot be updated: {', '.join(illegal)}")

        account = self._get_orm(organization_id, account_id)

        if "statement_section" in changes:
            section = StatementSection(changes["statement_section"])
            self._check_section(AccountType(account.account_type), section)
            changes["statement_section"] = section.value
        if changes.get("net_asset_class") is not None:
            changes["net_asset_class"] = NetAssetClass(changes["net_asset_class"]).value
        if "name" in changes and not (changes["name"] or "").strip():
            raise ValidationError("Account name cannot be empty")

        for field_name, value in changes.items():
            setattr(account, field_name, value)
        account.updated_by = actor
        self.session.flush()

        logger.info(
            "account_updated",
            extra={
                "account_id": str(account.id),
                "fields": sorted(changes),
                "actor_id": actor,
            },
        )
        return AccountInfo.from_model(account)

    def deactivate_account(
        self, organization_id: int, account_id: UUID, actor: str,
    ) -> AccountInfo:
        """
        Soft-delete an account.  Historical lines keep referencing it.

        Postconditions:
            - is_active is False; deactivating twice is a no-op.
        """
        account = self._get_orm(organization_id, account_id)
        if account.is_active:
            account.is_active = False
            account.updated_by = actor
            self.session.flush()
            logger.info(
                "account_deactivated",
                extra={
                    "account_id": str(account.id),
                    "account_number": account.account_number,
                    "actor_id": actor,
                },
            )
        return AccountInfo.from_model(account)

    def seed_default_chart(
        self,
        organization_id: int,
        org_type: str,
        actor: str,
        chart: ChartSeed | None = None,
    ) -> list[AccountInfo]:
        """
        Install the canonical chart for an organization.

        Idempotent: numbers already present (active or not) are left
        untouched.

        Args:
            organization_id: Target organization.
            org_type: Organization type, recorded in the seeding log.
            actor: User performing the seed.
            chart: Chart to install; defaults to the packaged chart.

        Returns:
            The accounts created by this call, in chart order.
        """
        if chart is None:
            from fund_config import get_default_chart

            chart = get_default_chart()

        existing = set(
            self.session.execute(
                select(Account.account_number).where(
                    Account.organization_id == organization_id,
                )
            ).scalars()
        )

        created = []
        for seed in chart.accounts:
            if seed.account_number in existing:
                continue
            created.append(
                self.create_account(
                    organization_id,
                    seed.account_number,
                    seed.name,
                    seed.account_type,
                    actor,
                    category=seed.category,
                    description=f"Default {seed.name} account",
                    statement_section=seed.statement_section,
                    statement_order=seed.statement_order,
                    normal_balance=seed.normal_balance,
                    net_asset_class=seed.net_asset_class,
                )
            )

        logger.info(
            "chart_seeded",
            extra={
                "organization_id": organization_id,
                "org_type": org_type,
                "chart_id": chart.chart_id,
                "chart_version": chart.version,
                "checksum": chart.checksum,
                "created_count": len(created),
                "skipped_count": len(chart.accounts) - len(created),
            },
        )
        return created

    @staticmethod
    def _check_section(account_type: AccountType, section: StatementSection) -> None:
        if section not in SECTIONS_BY_TYPE[account_type]:
            raise ValidationError(
                f"Section {section.value!r} is not valid for {account_type.value} accounts"
            )
