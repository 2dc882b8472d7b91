"""Credit prices: the unlock cost tier table and the purchasable packages."""

from decimal import Decimal

from renolink.common.enums import BudgetRange
from renolink.core.ledger.schemas import CreditPackage

CREDIT_COST_MAP: dict[BudgetRange, int] = {
    BudgetRange.UNDER_5000: 2,
    BudgetRange.FROM_5000_TO_15000: 3,
    BudgetRange.FROM_15000_TO_30000: 5,
    BudgetRange.FROM_30000_TO_50000: 7,
    BudgetRange.FROM_50000_TO_100000: 10,
    BudgetRange.FROM_100000_TO_250000: 15,
    BudgetRange.OVER_250000: 20,
}

BUDGET_LABELS: dict[BudgetRange, str] = {
    BudgetRange.UNDER_5000: "Under $5,000",
    BudgetRange.FROM_5000_TO_15000: "$5,000 - $15,000",
    BudgetRange.FROM_15000_TO_30000: "$15,000 - $30,000",
    BudgetRange.FROM_30000_TO_50000: "$30,000 - $50,000",
    BudgetRange.FROM_50000_TO_100000: "$50,000 - $100,000",
    BudgetRange.FROM_100000_TO_250000: "$100,000 - $250,000",
    BudgetRange.OVER_250000: "Over $250,000",
}

CREDIT_PACKAGES: list[CreditPackage] = [
    CreditPackage(id="starter", name="Starter", credits=10, price=Decimal("49.00")),
    CreditPackage(id="professional", name="Professional", credits=25, price=Decimal("99.00")),
    CreditPackage(id="business", name="Business", credits=50, price=Decimal("179.00")),
    CreditPackage(id="enterprise", name="Enterprise", credits=100, price=Decimal("299.00")),
]


def credit_cost_for(budget_range: BudgetRange | str) -> int:
    return CREDIT_COST_MAP[BudgetRange(budget_range)]


def budget_label_for(budget_range: BudgetRange | str) -> str:
    return BUDGET_LABELS[BudgetRange(budget_range)]


def get_package(package_id: str) -> CreditPackage | None:
    return next((p for p in CREDIT_PACKAGES if p.id == package_id), None)
