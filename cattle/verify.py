"""Check the installed node configuration toolkit."""

import re
from dataclasses import dataclass
from typing import Optional, Tuple

import structlog

from .errors import ToolkitError
from .toolkit import BootstrapToolkit

logger = structlog.get_logger()

VERSION_PATTERN = re.compile(r"(\d+)\.(\d+)\.(\d+)")
RECOMMENDATION_URL = "https://github.com/fboucquez/symbol-bootstrap/"


def parse_version(text: str) -> Optional[Tuple[int, int, int]]:
    """Find the first ``major.minor.patch`` in ``text``."""
    match = VERSION_PATTERN.search(text or "")
    if not match:
        return None
    return tuple(int(part) for part in match.groups())


@dataclass
class VerifyReport:
    header: str
    expected_version: str
    installed_version: Optional[str] = None
    ok: bool = False
    recommendation: Optional[str] = None


def verify_toolkit(toolkit: BootstrapToolkit, expected_version: str) -> VerifyReport:
    """Report whether the toolkit is installed in ``expected_version`` or newer."""
    report = VerifyReport(header="Bootstrap Version", expected_version=expected_version)
    expected = parse_version(expected_version)
    if expected is None:
        raise ToolkitError(f"Invalid expected toolkit version '{expected_version}'")

    try:
        output = toolkit.version()
    except ToolkitError as e:
        logger.warning("toolkit_version_unavailable", error=str(e))
        report.recommendation = f"Install the toolkit. See {RECOMMENDATION_URL}"
        return report

    installed = parse_version(output)
    if installed is None:
        report.installed_version = output
        report.recommendation = f"Cannot read the toolkit version. See {RECOMMENDATION_URL}"
        return report

    report.installed_version = ".".join(str(part) for part in installed)
    report.ok = installed >= expected
    if not report.ok:
        report.recommendation = f"At least version {expected_version} is required. Upgrade from {RECOMMENDATION_URL}"
    logger.info("toolkit_verified", installed=report.installed_version, expected=expected_version, ok=report.ok)
    return report
