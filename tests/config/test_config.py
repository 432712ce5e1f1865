"""
Configuration tests.

Verifies:
- The packaged chart parses, is checksummed and matches the posting defaults
- Chart schema violations are rejected
- Settings files and the database URL environment override
- DonationPostingConfig and ReportingConfig validation
"""

from pathlib import Path

import pytest
import yaml

from fund_config import DEFAULT_CHART, get_default_chart, load_settings
from fund_config.loader import (
    DATABASE_URL_ENV,
    compute_checksum,
    parse_account_seed,
    parse_chart,
    parse_settings,
)
from fund_kernel.models.account import AccountType, NetAssetClass, StatementSection
from fund_modules.donations import DonationPostingConfig
from fund_modules.reporting import ReportingConfig


class TestDefaultChart:

    def test_packaged_chart_loads(self):
        chart = get_default_chart()

        assert chart.chart_id == DEFAULT_CHART
        assert chart.version == 1
        assert len(chart.accounts) == 20
        assert len(chart.checksum) == 64

    def test_posting_accounts_present(self):
        chart = get_default_chart()
        defaults = DonationPostingConfig()

        assert chart.get(defaults.cash_account_number).account_type == AccountType.ASSET
        assert chart.get(defaults.revenue_account_number).account_type == AccountType.REVENUE
        assert chart.get(defaults.fee_account_number).account_type == AccountType.EXPENSE
        assert chart.get("4000").net_asset_class == NetAssetClass.UNRESTRICTED

    def test_unknown_chart(self):
        with pytest.raises(FileNotFoundError):
            get_default_chart("no_such_chart")


class TestChartParsing:

    def _doc(self, *accounts):
        return {"chart_id": "tiny", "version": 2, "accounts": list(accounts)}

    def test_parse_account_seed(self):
        seed = parse_account_seed(
            {"number": 1000, "name": "Cash", "type": "asset", "section": "current_assets"}
        )

        assert seed.account_number == "1000"
        assert seed.statement_section == StatementSection.CURRENT_ASSETS
        assert seed.statement_order == 0
        assert seed.normal_balance is None

    def test_section_must_match_type(self):
        with pytest.raises(ValueError):
            parse_account_seed(
                {"number": "4000", "name": "Gifts", "type": "revenue", "section": "net_assets"}
            )

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            parse_account_seed(
                {"number": "9000", "name": "?", "type": "equity", "section": "revenue"}
            )

    def test_duplicate_numbers_rejected(self):
        account = {"number": "1000", "name": "Cash", "type": "asset", "section": "current_assets"}

        with pytest.raises(ValueError, match="Duplicate"):
            parse_chart(self._doc(account, dict(account, name="Cash 2")))

    def test_checksum_is_deterministic(self):
        assert compute_checksum({"a": 1, "b": [1, 2]}) == compute_checksum({"b": [1, 2], "a": 1})
        assert compute_checksum({"a": 1}) != compute_checksum({"a": 2})

    def test_checksum_tracks_content(self):
        account = {"number": "1000", "name": "Cash", "type": "asset", "section": "current_assets"}

        first = parse_chart(self._doc(account))
        renamed = parse_chart(self._doc(dict(account, name="Checking")))

        assert first.checksum != renamed.checksum
        assert first.account_numbers() == ("1000",)


class TestLedgerSettings:

    def test_defaults(self):
        settings = parse_settings({}, environ={})

        assert settings.database_url == "sqlite://"
        assert settings.log_level == "INFO"
        assert not settings.echo_sql
        assert dict(settings.donation_posting) == {}

    def test_environment_overrides_database_url(self):
        data = {"database": {"url": "sqlite:///file.db"}}

        settings = parse_settings(data, environ={DATABASE_URL_ENV: "postgresql+psycopg://db/ledger"})

        assert settings.database_url == "postgresql+psycopg://db/ledger"

    def test_sections_are_read_only(self):
        settings = parse_settings({"reporting": {"entity_name": "Food Bank"}}, environ={})

        with pytest.raises(TypeError):
            settings.reporting["entity_name"] = "Other"

    def test_load_settings_file(self, tmp_path: Path):
        path = tmp_path / "ledger.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "database": {"url": "sqlite:///ledger.db", "echo": True},
                    "logging": {"level": "debug"},
                    "donation_posting": {"fee_account_number": "6300"},
                    "reporting": {"entity_name": "Food Bank", "include_zero_balances": True},
                }
            )
        )

        settings = load_settings(path, environ={})
        donation_config = DonationPostingConfig.from_dict(settings.donation_posting)
        reporting_config = ReportingConfig.from_dict(settings.reporting)

        assert settings.database_url == "sqlite:///ledger.db"
        assert settings.echo_sql
        assert settings.log_level == "DEBUG"
        assert donation_config.fee_account_number == "6300"
        assert donation_config.cash_account_number == "1000"
        assert reporting_config.entity_name == "Food Bank"
        assert reporting_config.include_zero_balances

    def test_missing_settings_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "absent.yaml")


class TestDonationPostingConfig:

    def test_descriptions(self):
        config = DonationPostingConfig()

        assert config.describe_entry("D-17") == "Donation #D-17"
        assert config.reference_for("D-17") == "Donation-D-17"
        assert config.describe_cash_line("Ada") == "Donation from Ada"
        assert config.describe_cash_line(None) == "Donation from Anonymous"

    def test_accounts_must_be_distinct(self):
        with pytest.raises(ValueError, match="distinct"):
            DonationPostingConfig(fee_account_number="1000")

    def test_accounts_required(self):
        with pytest.raises(ValueError):
            DonationPostingConfig(revenue_account_number="")

    def test_unknown_placeholder_rejected(self):
        with pytest.raises(ValueError, match="placeholder"):
            DonationPostingConfig(entry_description="Gift {campaign}")

    def test_unknown_key_rejected(self):
        with pytest.raises(TypeError):
            DonationPostingConfig.from_dict({"cash_account": "1000"})


class TestReportingConfig:

    def test_defaults(self):
        config = ReportingConfig.with_defaults()

        assert config.default_currency == "USD"
        assert not config.include_zero_balances
        assert not config.include_inactive

    def test_currency_code_validated(self):
        with pytest.raises(ValueError):
            ReportingConfig(default_currency="DOLLARS")
