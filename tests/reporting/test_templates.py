"""
Statement template tests.

Verifies:
- Layout validation and the JSON round trip
- Default resolution: organization default > global default > built-in
- Explicit templates must be active, visible and of the right type
- Deactivation is owner-only and idempotent
"""

from uuid import uuid4

import pytest

from fund_kernel.exceptions import InvalidTemplateError, TemplateNotFoundError
from fund_kernel.models.account import AccountType, StatementSection, StatementType
from fund_modules.reporting import (
    DEFAULT_ACTIVITY_LAYOUT,
    DEFAULT_POSITION_LAYOUT,
    SectionLayout,
    StatementLayout,
    StatementTemplateService,
    layout_from_dict,
    layout_to_dict,
    validate_layout,
)

FUNCTIONAL_EXPENSES = StatementLayout(
    statement_type=StatementType.ACTIVITY,
    title="Statement of Activities by Function",
    sections=(
        SectionLayout("support", "Support and Revenue", 1, (AccountType.REVENUE,)),
        SectionLayout(
            "program_services", "Program Services", 2, (AccountType.EXPENSE,),
            (StatementSection.PROGRAM_EXPENSES,),
        ),
        SectionLayout(
            "supporting_services", "Supporting Services", 3, (AccountType.EXPENSE,),
            (StatementSection.ADMIN_EXPENSES, StatementSection.FUNDRAISING_EXPENSES),
        ),
    ),
)


@pytest.fixture
def template_service(session, deterministic_clock) -> StatementTemplateService:
    return StatementTemplateService(session, deterministic_clock)


class TestLayoutValidation:

    def test_defaults_are_valid(self):
        assert validate_layout(DEFAULT_ACTIVITY_LAYOUT) is DEFAULT_ACTIVITY_LAYOUT
        assert validate_layout(DEFAULT_POSITION_LAYOUT) is DEFAULT_POSITION_LAYOUT

    def test_round_trip(self):
        assert layout_from_dict(layout_to_dict(FUNCTIONAL_EXPENSES)) == FUNCTIONAL_EXPENSES

    def test_wrong_statement_account_type(self):
        layout = StatementLayout(
            StatementType.ACTIVITY, "Bad",
            (SectionLayout("cash", "Cash", 1, (AccountType.ASSET,)),),
        )
        with pytest.raises(InvalidTemplateError):
            validate_layout(layout)

    def test_placement_must_match_types(self):
        layout = StatementLayout(
            StatementType.ACTIVITY, "Bad",
            (
                SectionLayout(
                    "revenue", "Revenue", 1, (AccountType.REVENUE,),
                    (StatementSection.PROGRAM_EXPENSES,),
                ),
            ),
        )
        with pytest.raises(InvalidTemplateError):
            validate_layout(layout)

    @pytest.mark.parametrize(
        "sections",
        [
            (),
            (
                SectionLayout("a", "A", 1, (AccountType.REVENUE,)),
                SectionLayout("a", "Again", 2, (AccountType.EXPENSE,)),
            ),
            (SectionLayout("other", "Other", 1, (AccountType.REVENUE,)),),
            (SectionLayout("empty", "Empty", 1, ()),),
        ],
    )
    def test_structural_problems(self, sections):
        with pytest.raises(InvalidTemplateError):
            validate_layout(StatementLayout(StatementType.ACTIVITY, "Bad", sections))

    def test_malformed_dict(self):
        with pytest.raises(InvalidTemplateError):
            layout_from_dict({"statement_type": "activity", "title": "x"})
        with pytest.raises(InvalidTemplateError):
            layout_from_dict(
                {
                    "statement_type": "activity",
                    "title": "x",
                    "sections": [{"key": "a", "title": "A", "account_types": ["equity"]}],
                }
            )


class TestCreateTemplate:

    def test_create(self, template_service, organization_id, test_actor_id):
        template = template_service.create_template(
            organization_id, "  Functional  ", StatementType.ACTIVITY,
            FUNCTIONAL_EXPENSES, test_actor_id, description="By function",
        )

        assert template.name == "Functional"
        assert template.layout == FUNCTIONAL_EXPENSES
        assert template.usage_count == 0
        assert not template.is_global

    def test_type_mismatch(self, template_service, organization_id, test_actor_id):
        with pytest.raises(InvalidTemplateError):
            template_service.create_template(
                organization_id, "Mismatch", StatementType.POSITION,
                FUNCTIONAL_EXPENSES, test_actor_id,
            )

    def test_name_required(self, template_service, organization_id, test_actor_id):
        with pytest.raises(InvalidTemplateError):
            template_service.create_template(
                organization_id, " ", StatementType.ACTIVITY, FUNCTIONAL_EXPENSES, test_actor_id,
            )

    def test_new_default_replaces_old(self, template_service, organization_id, test_actor_id):
        first = template_service.create_template(
            organization_id, "First", StatementType.ACTIVITY, FUNCTIONAL_EXPENSES,
            test_actor_id, is_default=True,
        )
        second = template_service.create_template(
            organization_id, "Second", StatementType.ACTIVITY, DEFAULT_ACTIVITY_LAYOUT,
            test_actor_id, is_default=True,
        )

        assert not template_service.get_template(organization_id, first.id).is_default
        assert template_service.get_template(organization_id, second.id).is_default


class TestUpdateTemplate:

    def test_rename_and_relayout(self, template_service, organization_id, test_actor_id):
        template = template_service.create_template(
            organization_id, "Own", StatementType.ACTIVITY, DEFAULT_ACTIVITY_LAYOUT, test_actor_id,
        )

        updated = template_service.update_template(
            organization_id, template.id, test_actor_id,
            name="  By Function ", description="Functional view", layout=FUNCTIONAL_EXPENSES,
        )

        assert updated.name == "By Function"
        assert updated.description == "Functional view"
        assert updated.layout == FUNCTIONAL_EXPENSES
        assert updated.statement_type == StatementType.ACTIVITY

    def test_becoming_default_clears_previous(
        self, template_service, organization_id, test_actor_id,
    ):
        old = template_service.create_template(
            organization_id, "Old", StatementType.ACTIVITY, DEFAULT_ACTIVITY_LAYOUT,
            test_actor_id, is_default=True,
        )
        new = template_service.create_template(
            organization_id, "New", StatementType.ACTIVITY, FUNCTIONAL_EXPENSES, test_actor_id,
        )

        template_service.update_template(organization_id, new.id, test_actor_id, is_default=True)

        assert not template_service.get_template(organization_id, old.id).is_default
        assert template_service.resolve_layout(organization_id, StatementType.ACTIVITY)[1] == new.id

    def test_layout_for_other_statement_rejected(
        self, template_service, organization_id, test_actor_id,
    ):
        template = template_service.create_template(
            organization_id, "Own", StatementType.ACTIVITY, FUNCTIONAL_EXPENSES, test_actor_id,
        )

        with pytest.raises(InvalidTemplateError):
            template_service.update_template(
                organization_id, template.id, test_actor_id, layout=DEFAULT_POSITION_LAYOUT,
            )
        with pytest.raises(InvalidTemplateError):
            template_service.update_template(organization_id, template.id, test_actor_id, name=" ")
        assert template_service.get_template(organization_id, template.id).name == "Own"

    def test_inactive_or_foreign_template_rejected(
        self, template_service, organization_id, test_actor_id,
    ):
        retired = template_service.create_template(
            organization_id, "Retired", StatementType.ACTIVITY, FUNCTIONAL_EXPENSES, test_actor_id,
        )
        template_service.deactivate_template(organization_id, retired.id, test_actor_id)
        shared = template_service.create_template(
            None, "Global", StatementType.ACTIVITY, DEFAULT_ACTIVITY_LAYOUT, test_actor_id,
        )

        with pytest.raises(InvalidTemplateError):
            template_service.update_template(organization_id, retired.id, test_actor_id, name="Back")
        with pytest.raises(TemplateNotFoundError):
            template_service.update_template(organization_id, shared.id, test_actor_id, name="Mine")


class TestResolveLayout:

    def test_builtin_fallback(self, template_service, organization_id):
        layout, template_id = template_service.resolve_layout(organization_id, StatementType.POSITION)

        assert layout is DEFAULT_POSITION_LAYOUT
        assert template_id is None

    def test_org_default_beats_global_default(
        self, template_service, organization_id, test_actor_id,
    ):
        template_service.create_template(
            None, "Global", StatementType.ACTIVITY, DEFAULT_ACTIVITY_LAYOUT,
            test_actor_id, is_default=True,
        )
        own = template_service.create_template(
            organization_id, "Own", StatementType.ACTIVITY, FUNCTIONAL_EXPENSES,
            test_actor_id, is_default=True,
        )

        layout, template_id = template_service.resolve_layout(organization_id, StatementType.ACTIVITY)

        assert template_id == own.id
        assert layout == FUNCTIONAL_EXPENSES

    def test_global_default_used_by_every_organization(
        self, template_service, organization_id, other_organization_id, test_actor_id,
    ):
        shared = template_service.create_template(
            None, "Global", StatementType.ACTIVITY, FUNCTIONAL_EXPENSES,
            test_actor_id, is_default=True,
        )

        assert template_service.resolve_layout(organization_id, StatementType.ACTIVITY)[1] == shared.id
        assert template_service.resolve_layout(other_organization_id, StatementType.ACTIVITY)[1] == shared.id

    def test_usage_counted(self, template_service, organization_id, test_actor_id):
        template = template_service.create_template(
            organization_id, "Own", StatementType.ACTIVITY, FUNCTIONAL_EXPENSES, test_actor_id,
        )

        template_service.resolve_layout(organization_id, StatementType.ACTIVITY, template.id)
        template_service.resolve_layout(organization_id, StatementType.ACTIVITY, template.id)

        assert template_service.get_template(organization_id, template.id).usage_count == 2

    def test_explicit_template_type_checked(self, template_service, organization_id, test_actor_id):
        template = template_service.create_template(
            organization_id, "Own", StatementType.ACTIVITY, FUNCTIONAL_EXPENSES, test_actor_id,
        )

        with pytest.raises(InvalidTemplateError):
            template_service.resolve_layout(organization_id, StatementType.POSITION, template.id)

    def test_inactive_template_rejected(self, template_service, organization_id, test_actor_id):
        template = template_service.create_template(
            organization_id, "Own", StatementType.ACTIVITY, FUNCTIONAL_EXPENSES, test_actor_id,
        )
        template_service.deactivate_template(organization_id, template.id, test_actor_id)

        with pytest.raises(InvalidTemplateError):
            template_service.resolve_layout(organization_id, StatementType.ACTIVITY, template.id)

    def test_other_organizations_template_invisible(
        self, template_service, organization_id, other_organization_id, test_actor_id,
    ):
        template = template_service.create_template(
            other_organization_id, "Theirs", StatementType.ACTIVITY,
            FUNCTIONAL_EXPENSES, test_actor_id,
        )

        with pytest.raises(TemplateNotFoundError):
            template_service.resolve_layout(organization_id, StatementType.ACTIVITY, template.id)


class TestListAndDeactivate:

    def test_listing_order_and_filters(self, template_service, organization_id, test_actor_id):
        template_service.create_template(
            None, "A global", StatementType.ACTIVITY, DEFAULT_ACTIVITY_LAYOUT, test_actor_id,
        )
        template_service.create_template(
            organization_id, "Zeta", StatementType.ACTIVITY, FUNCTIONAL_EXPENSES, test_actor_id,
        )
        template_service.create_template(
            organization_id, "Beta", StatementType.POSITION, DEFAULT_POSITION_LAYOUT, test_actor_id,
        )

        names = [t.name for t in template_service.get_templates(organization_id)]
        activity = template_service.get_templates(organization_id, StatementType.ACTIVITY)

        assert names == ["Beta", "Zeta", "A global"]
        assert [t.name for t in activity] == ["Zeta", "A global"]

    def test_deactivate_hides_and_clears_default(
        self, template_service, organization_id, test_actor_id,
    ):
        template = template_service.create_template(
            organization_id, "Own", StatementType.ACTIVITY, FUNCTIONAL_EXPENSES,
            test_actor_id, is_default=True,
        )

        first = template_service.deactivate_template(organization_id, template.id, test_actor_id)
        again = template_service.deactivate_template(organization_id, template.id, test_actor_id)

        assert not first.is_active and not first.is_default
        assert not again.is_active
        assert template_service.get_templates(organization_id) == []
        assert len(template_service.get_templates(organization_id, include_inactive=True)) == 1
        assert template_service.resolve_layout(organization_id, StatementType.ACTIVITY)[1] is None

    def test_only_owner_deactivates(
        self, template_service, organization_id, test_actor_id,
    ):
        shared = template_service.create_template(
            None, "Global", StatementType.ACTIVITY, DEFAULT_ACTIVITY_LAYOUT, test_actor_id,
        )

        with pytest.raises(TemplateNotFoundError):
            template_service.deactivate_template(organization_id, shared.id, test_actor_id)
        assert template_service.deactivate_template(None, shared.id, test_actor_id).is_global

    def test_unknown_template(self, template_service, organization_id):
        with pytest.raises(TemplateNotFoundError):
            template_service.get_template(organization_id, uuid4())
