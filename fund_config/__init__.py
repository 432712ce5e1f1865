"""
fund_config -- configuration entrypoints for the fund ledger.

Responsibility:
    ``get_default_chart()`` returns the versioned chart seed shipped with
    the package; ``load_settings()`` reads a deployment's YAML settings.

Architecture position:
    Configuration -- sits above ``fund_kernel`` models and below
    ``fund_modules``.

Failure modes:
    - ``FileNotFoundError`` -- unknown chart name or settings path.
    - ``ValueError`` -- schema violations in a chart document.

Audit relevance:
    Every chart load emits a ``chart_loaded`` log entry carrying the chart
    id, version and checksum.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from fund_config.loader import compute_checksum, load_chart, load_settings_file
from fund_config.schema import AccountSeed, ChartSeed, LedgerSettings
from fund_kernel.logging_config import get_logger

logger = get_logger("config")

_CHARTS_DIR = Path(__file__).parent / "charts"

DEFAULT_CHART = "nonprofit_default"


@lru_cache(maxsize=8)
def get_default_chart(chart_name: str = DEFAULT_CHART) -> ChartSeed:
    """
    Load a packaged chart seed by name.

    Raises:
        FileNotFoundError: if ``charts/<chart_name>.yaml`` does not exist.
    """
    chart = load_chart(_CHARTS_DIR / f"{chart_name}.yaml")
    logger.info(
        "chart_loaded",
        extra={
            "chart_id": chart.chart_id,
            "chart_version": chart.version,
            "checksum": chart.checksum,
            "account_count": len(chart.accounts),
        },
    )
    return chart


def load_settings(path: str | Path, environ: dict[str, str] | None = None) -> LedgerSettings:
    """Read a YAML settings file; the database URL may come from the environment."""
    settings = load_settings_file(Path(path), environ)
    logger.info(
        "settings_loaded",
        extra={"settings_path": str(path), "log_level": settings.log_level},
    )
    return settings


__all__ = [
    "AccountSeed",
    "ChartSeed",
    "DEFAULT_CHART",
    "LedgerSettings",
    "compute_checksum",
    "get_default_chart",
    "load_settings",
]
