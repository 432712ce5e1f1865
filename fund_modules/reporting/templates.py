"""
StatementTemplateService -- named statement layouts.

Responsibility:
    Stores, lists, updates and deactivates statement templates and resolves which
    layout a statement is rendered with.

Architecture position:
    Modules > Reporting -- imperative shell over FinancialStatementTemplate.
    Used by StatementService; flush-only.

Invariants enforced:
    - A stored layout always passes validate_layout() and matches the
      template's statement type.
    - At most one active default template per (organization, statement type);
      marking a new default clears the previous one.
    - An organization sees its own templates plus global ones, never another
      organization's.

Failure modes:
    - InvalidTemplateError: malformed layout, type mismatch, empty name, or
      rendering with an inactive template.
    - TemplateNotFoundError: unknown id or a template the organization
      cannot see.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from fund_kernel.domain.clock import Clock
from fund_kernel.exceptions import InvalidTemplateError, TemplateNotFoundError
from fund_kernel.logging_config import get_logger
from fund_kernel.models.account import StatementType
from fund_kernel.services.base import BaseService
from fund_modules.reporting.layouts import (
    DEFAULT_LAYOUTS,
    StatementLayout,
    layout_to_dict,
    validate_layout,
)
from fund_modules.reporting.models import StatementTemplateInfo
from fund_modules.reporting.orm import FinancialStatementTemplate

logger = get_logger("modules.reporting.templates")


class StatementTemplateService(BaseService):
    """
    Service for statement templates.

    Contract:
        Methods return StatementTemplateInfo snapshots.  ``resolve_layout``
        is the single place deciding which layout a statement uses.

    Non-goals:
        - Templates are never deleted; deactivation hides them.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session, clock)

    # Writes

    def create_template(
        self,
        organization_id: int | None,
        name: str,
        statement_type: StatementType,
        layout: StatementLayout,
        actor: str,
        description: str | None = None,
        is_default: bool = False,
    ) -> StatementTemplateInfo:
        """
        Store a new template.

        Args:
            organization_id: Owning organization, or None for a global template.
            name: Display name.
            statement_type: Statement the layout is for.
            layout: Section layout; validated before storage.
            actor: Creator.
            description: Optional free text.
            is_default: Use this template when no template is requested.

        Raises:
            InvalidTemplateError: Invalid layout or mismatched statement type.
        """
        statement_type = StatementType(statement_type)
        if not name or not name.strip():
            raise InvalidTemplateError("template name is required")
        if layout.statement_type != statement_type:
            raise InvalidTemplateError(
                f"layout is for the {layout.statement_type.value} statement, "
                f"template is for {statement_type.value}"
            )
        validate_layout(layout)

        if is_default:
            self._clear_default(organization_id, statement_type, actor)

        template = FinancialStatementTemplate(
            organization_id=organization_id,
            name=name.strip(),
            statement_type=statement_type.value,
            description=description,
            layout=layout_to_dict(layout),
            is_default=is_default,
            is_active=True,
            usage_count=0,
            created_by=actor,
        )
        self.session.add(template)
        self.session.flush()

        logger.info(
            "statement_template_created",
            extra={
                "template_id": str(template.id),
                "template_name": template.name,
                "statement_type": statement_type.value,
                "is_global": organization_id is None,
                "is_default": is_default,
            },
        )
        return StatementTemplateInfo.from_model(template)

    def update_template(
        self,
        organization_id: int | None,
        template_id: UUID,
        actor: str,
        *,
        name: str | None = None,
        description: str | None = None,
        layout: StatementLayout | None = None,
        is_default: bool | None = None,
    ) -> StatementTemplateInfo:
        """
        Change an active template's name, description, layout or default flag.

        The statement type is fixed at creation; a new layout must be for the
        same statement.  Only the owner may update, as for deactivation.

        Raises:
            TemplateNotFoundError: Unknown id or not owned by organization_id.
            InvalidTemplateError: Inactive template, empty name, or an
                invalid or mismatched layout.
        """
        template = self._get_owned_orm(organization_id, template_id)
        if not template.is_active:
            raise InvalidTemplateError(f"template {template_id} is inactive")
        statement_type = StatementType(template.statement_type)

        changed = []
        if name is not None:
            if not name.strip():
                raise InvalidTemplateError("template name is required")
            template.name = name.strip()
            changed.append("name")
        if description is not None:
            template.description = description
            changed.append("description")
        if layout is not None:
            if layout.statement_type != statement_type:
                raise InvalidTemplateError(
                    f"layout is for the {layout.statement_type.value} statement, "
                    f"template is for {statement_type.value}"
                )
            template.layout = layout_to_dict(validate_layout(layout))
            changed.append("layout")
        if is_default is not None and is_default != template.is_default:
            if is_default:
                self._clear_default(organization_id, statement_type, actor)
            template.is_default = is_default
            changed.append("is_default")

        template.updated_by = actor
        self.session.flush()
        logger.info(
            "statement_template_updated",
            extra={"template_id": str(template.id), "fields": changed, "actor": actor},
        )
        return StatementTemplateInfo.from_model(template)

    def deactivate_template(
        self, organization_id: int | None, template_id: UUID, actor: str,
    ) -> StatementTemplateInfo:
        """
        Hide a template from listings and rendering (idempotent).

        Only the owner may deactivate; global templates are deactivated by
        passing organization_id=None.
        """
        template = self._get_owned_orm(organization_id, template_id)
        if template.is_active:
            template.is_active = False
            template.is_default = False
            template.updated_by = actor
            self.session.flush()
            logger.info(
                "statement_template_deactivated",
                extra={"template_id": str(template.id), "actor": actor},
            )
        return StatementTemplateInfo.from_model(template)

    # Reads

    def get_template(self, organization_id: int, template_id: UUID) -> StatementTemplateInfo:
        return StatementTemplateInfo.from_model(self._get_visible_orm(organization_id, template_id))

    def get_templates(
        self,
        organization_id: int,
        statement_type: StatementType | None = None,
        include_inactive: bool = False,
    ) -> list[StatementTemplateInfo]:
        """Organization templates first, then global ones, each by name."""
        query = select(FinancialStatementTemplate).where(
            or_(
                FinancialStatementTemplate.organization_id == organization_id,
                FinancialStatementTemplate.organization_id.is_(None),
            )
        )
        if statement_type is not None:
            query = query.where(
                FinancialStatementTemplate.statement_type == StatementType(statement_type).value
            )
        if not include_inactive:
            query = query.where(FinancialStatementTemplate.is_active.is_(True))

        templates = self.session.execute(query).scalars().all()
        templates = sorted(templates, key=lambda t: (t.organization_id is None, t.name))
        return [StatementTemplateInfo.from_model(t) for t in templates]

    def resolve_layout(
        self,
        organization_id: int,
        statement_type: StatementType,
        template_id: UUID | None = None,
    ) -> tuple[StatementLayout, UUID | None]:
        """
        Layout to render a statement with, and the template it came from.

        An explicit template must be active and of the right type.  Without
        one, the organization's default template wins over a global default,
        and the built-in layout is the fallback.  A template that is used
        has its usage_count incremented.
        """
        statement_type = StatementType(statement_type)
        if template_id is not None:
            template = self._get_visible_orm(organization_id, template_id)
            if not template.is_active:
                raise InvalidTemplateError(f"template {template_id} is inactive")
            if template.statement_type != statement_type.value:
                raise InvalidTemplateError(
                    f"template {template_id} is for the {template.statement_type} statement"
                )
        else:
            template = self._default_orm(organization_id, statement_type)
            if template is None:
                return DEFAULT_LAYOUTS[statement_type], None

        info = StatementTemplateInfo.from_model(template)
        template.usage_count += 1
        self.session.flush()
        return info.layout, template.id

    # Internals

    @staticmethod
    def _owned_by(organization_id: int | None):
        if organization_id is None:
            return FinancialStatementTemplate.organization_id.is_(None)
        return FinancialStatementTemplate.organization_id == organization_id

    def _get_owned_orm(
        self, organization_id: int | None, template_id: UUID,
    ) -> FinancialStatementTemplate:
        template = self.session.execute(
            select(FinancialStatementTemplate).where(
                FinancialStatementTemplate.id == template_id,
                self._owned_by(organization_id),
            )
        ).scalar_one_or_none()
        if template is None:
            raise TemplateNotFoundError(str(template_id))
        return template

    def _get_visible_orm(
        self, organization_id: int, template_id: UUID,
    ) -> FinancialStatementTemplate:
        template = self.session.execute(
            select(FinancialStatementTemplate).where(
                FinancialStatementTemplate.id == template_id,
                or_(
                    FinancialStatementTemplate.organization_id == organization_id,
                    FinancialStatementTemplate.organization_id.is_(None),
                ),
            )
        ).scalar_one_or_none()
        if template is None:
            raise TemplateNotFoundError(str(template_id))
        return template

    def _default_orm(
        self, organization_id: int, statement_type: StatementType,
    ) -> FinancialStatementTemplate | None:
        candidates = self.session.execute(
            select(FinancialStatementTemplate).where(
                or_(
                    FinancialStatementTemplate.organization_id == organization_id,
                    FinancialStatementTemplate.organization_id.is_(None),
                ),
                FinancialStatementTemplate.statement_type == statement_type.value,
                FinancialStatementTemplate.is_default.is_(True),
                FinancialStatementTemplate.is_active.is_(True),
            )
        ).scalars().all()
        owned = [t for t in candidates if t.organization_id is not None]
        if owned:
            return owned[0]
        return candidates[0] if candidates else None

    def _clear_default(
        self, organization_id: int | None, statement_type: StatementType, actor: str,
    ) -> None:
        previous = self.session.execute(
            select(FinancialStatementTemplate).where(
                self._owned_by(organization_id),
                FinancialStatementTemplate.statement_type == statement_type.value,
                FinancialStatementTemplate.is_default.is_(True),
            )
        ).scalars().all()
        for template in previous:
            template.is_default = False
            template.updated_by = actor
