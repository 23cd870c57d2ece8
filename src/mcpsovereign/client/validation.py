"""Pre-publish checks for local products.

The store accepts any product; these checks mirror the marketplace's
listing rules so a caller can catch problems before paying for a push.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from mcpsovereign.client.models import LocalProduct
from mcpsovereign.core.types import DeliveryType

NAME_MIN_LENGTH = 5
NAME_MAX_LENGTH = 100
DESCRIPTION_MIN_LENGTH = 20
DESCRIPTION_MAX_LENGTH = 2000
PRICE_MIN = 100
PRICE_MAX = 10_000_000

VALID_CATEGORIES = (
    "datasets",
    "prompt-packs",
    "api-access",
    "mcp-tools",
    "models",
    "knowledge-bases",
)


@dataclass
class ValidationReport:
    """Outcome of validate_product()."""

    passed: list[str] = field(default_factory=list)
    issues: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.issues


def validate_product(product: LocalProduct) -> ValidationReport:
    """Check a product against the marketplace listing rules."""
    report = ValidationReport()

    if len(product.name) < NAME_MIN_LENGTH:
        report.issues.append(f"Name too short (min {NAME_MIN_LENGTH} characters)")
    elif len(product.name) > NAME_MAX_LENGTH:
        report.issues.append(f"Name too long (max {NAME_MAX_LENGTH} characters)")
    else:
        report.passed.append("Name length")

    if len(product.description) < DESCRIPTION_MIN_LENGTH:
        report.issues.append(
            f"Description too short (min {DESCRIPTION_MIN_LENGTH} characters)"
        )
    elif len(product.description) > DESCRIPTION_MAX_LENGTH:
        report.issues.append(
            f"Description too long (max {DESCRIPTION_MAX_LENGTH} characters)"
        )
    else:
        report.passed.append("Description length")

    if product.price < PRICE_MIN:
        report.issues.append(f"Price too low (min {PRICE_MIN} credits)")
    elif product.price > PRICE_MAX:
        report.issues.append(f"Price too high (max {PRICE_MAX:,} credits)")
    else:
        report.passed.append("Price range")

    if product.delivery_type is DeliveryType.DOWNLOAD and not product.delivery_payload:
        report.issues.append("Download products need a delivery URL")
    else:
        report.passed.append("Delivery configured")

    if product.category_id not in VALID_CATEGORIES:
        report.issues.append(f"Invalid category. Use: {', '.join(VALID_CATEGORIES)}")
    else:
        report.passed.append("Category valid")

    return report
