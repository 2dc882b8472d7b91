"""
Seed script for RenoLink.

Populates the database with demo data: an admin, homeowners, an approved
and a pending contractor, open projects with private details, and one
unlock with a matching ledger history, bid and conversation.

Usage:
    python -m renolink.scripts.seed
"""

import asyncio
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select

from renolink.common.enums import (
    BidStatus,
    BudgetRange,
    OwnershipStatus,
    PreferredStartDate,
    ProjectCategory,
    ProjectStatus,
    PropertyType,
    TransactionType,
    UserRole,
    VerificationStatus,
)
from renolink.common.security import get_password_hash
from renolink.core.ledger.pricing import budget_label_for, credit_cost_for, get_package
from renolink.core.marketplace.catalog import CATEGORY_LABELS
from renolink.core.messaging.service import conversation_key, message_preview
from renolink.db.models import (
    Bid,
    Conversation,
    CreditTransaction,
    Message,
    Project,
    ProjectPrivateDetails,
    ProjectUnlock,
    User,
)
from renolink.db.models.unlock import unlock_key
from renolink.db.session import async_session_factory


def _project(owner: User, title: str, category: ProjectCategory, budget: BudgetRange, city: str,
             street: str, postal_code: str, description: str, scope: list[str]) -> Project:
    project = Project(
        id=uuid.uuid4(),
        homeowner_id=owner.id,
        title=title,
        category=category.value,
        category_name=CATEGORY_LABELS[category],
        property_type=PropertyType.HOUSE.value,
        ownership_status=OwnershipStatus.OWN.value,
        budget_range=budget.value,
        budget_label=budget_label_for(budget),
        preferred_start_date=PreferredStartDate.WITHIN_MONTH.value,
        city=city,
        credit_cost=credit_cost_for(budget),
        status=ProjectStatus.OPEN.value,
    )
    project.private_details = ProjectPrivateDetails(
        homeowner_name=owner.full_name,
        homeowner_email=owner.email,
        homeowner_phone=owner.phone,
        full_description=description,
        street_address=street,
        unit="",
        province="Ontario",
        postal_code=postal_code,
        scope_of_work=scope,
        has_drawings="no",
        has_permits="not_sure",
        materials_provider="contractor",
        deadline="",
        contact_preference="phone",
        parking_available="yes",
        building_restrictions="",
    )
    return project


async def main() -> None:
    async with async_session_factory() as session:
        # ------------------------------------------------------------------
        # Guard: skip if already seeded (check for admin user)
        # ------------------------------------------------------------------
        result = await session.execute(
            select(User).where(User.email == "admin@renolink.ca")
        )
        if result.scalar_one_or_none() is not None:
            print("Database already seeded -- skipping.")
            return

        # ==================================================================
        # USERS
        # ==================================================================
        hashed = get_password_hash("Testpass123")

        admin = User(
            id=uuid.uuid4(),
            email="admin@renolink.ca",
            hashed_password=hashed,
            full_name="Admin User",
            phone="(416) 555-0100",
            role=UserRole.ADMIN.value,
        )
        sarah = User(
            id=uuid.uuid4(),
            email="sarah@example.com",
            hashed_password=hashed,
            full_name="Sarah Chen",
            phone="(416) 555-0101",
            role=UserRole.HOMEOWNER.value,
        )
        marcus = User(
            id=uuid.uuid4(),
            email="marcus@example.com",
            hashed_password=hashed,
            full_name="Marcus Johnson",
            phone="(613) 555-0102",
            role=UserRole.HOMEOWNER.value,
        )
        summit = User(
            id=uuid.uuid4(),
            email="office@summitreno.ca",
            hashed_password=hashed,
            full_name="Elena Rodriguez",
            phone="(905) 555-0103",
            role=UserRole.CONTRACTOR.value,
            company_name="Summit Renovations Inc.",
            contact_name="Elena Rodriguez",
            business_number="123456789RC0001",
            obr_number="1000234567",
            verification_status=VerificationStatus.APPROVED.value,
            verified_at=datetime(2026, 1, 12, 15, 0, tzinfo=timezone.utc),
            credit_balance=0,
        )
        northline = User(
            id=uuid.uuid4(),
            email="hello@northlinebuild.ca",
            hashed_password=hashed,
            full_name="David Kim",
            phone="(647) 555-0104",
            role=UserRole.CONTRACTOR.value,
            company_name="Northline Build Co.",
            contact_name="David Kim",
            business_number="987654321",
            obr_number="2000876543",
            verification_status=VerificationStatus.PENDING.value,
            credit_balance=0,
        )

        users = [admin, sarah, marcus, summit, northline]
        session.add_all(users)

        # ==================================================================
        # PROJECTS
        # ==================================================================
        kitchen = _project(
            sarah, "Kitchen remodel with island", ProjectCategory.KITCHEN,
            BudgetRange.FROM_30000_TO_50000, "Toronto", "42 Maple Ave", "M4E 1A1",
            "Full gut of a 1990s kitchen. New cabinets, quartz counters, an island "
            "with seating for three and relocated sink plumbing.",
            ["Demolition", "Cabinets", "Countertops", "Plumbing", "Electrical"],
        )
        bathroom = _project(
            sarah, "Main floor powder room refresh", ProjectCategory.BATHROOM,
            BudgetRange.UNDER_5000, "Toronto", "42 Maple Ave", "M4E 1A1",
            "Replace vanity, toilet and light fixture; patch and paint walls.",
            ["Fixtures", "Painting"],
        )
        basement = _project(
            marcus, "Basement finishing for rec room", ProjectCategory.BASEMENT,
            BudgetRange.FROM_15000_TO_30000, "Ottawa", "7 Elgin Cres", "K1P 5N2",
            "Frame, insulate and drywall an unfinished 700 sq ft basement with a "
            "small wet bar and pot lights throughout.",
            ["Framing", "Insulation", "Drywall", "Electrical", "Flooring"],
        )
        deck = _project(
            marcus, "Composite deck replacement", ProjectCategory.DECK_PATIO,
            BudgetRange.FROM_5000_TO_15000, "Ottawa", "7 Elgin Cres", "K1P 5N2",
            "Remove rotting pressure-treated deck and rebuild at the same footprint "
            "in composite with aluminum railings.",
            ["Demolition", "Framing", "Decking"],
        )
        session.add_all([kitchen, bathroom, basement, deck])
        await session.flush()

        # ==================================================================
        # LEDGER: one purchase, one unlock (balance == sum of deltas)
        # ==================================================================
        package = get_package("professional")
        purchase = CreditTransaction(
            contractor_id=summit.id,
            type=TransactionType.PURCHASE.value,
            credit_amount=package.credits,
            credit_delta=package.credits,
            cost=package.price,
            package_id=package.id,
            reference=f"sim_{uuid.uuid4().hex[:16]}",
        )
        unlock = ProjectUnlock(
            unlock_key=unlock_key(summit.id, basement.id),
            contractor_id=summit.id,
            project_id=basement.id,
            homeowner_id=marcus.id,
            credit_cost=basement.credit_cost,
        )
        unlock_tx = CreditTransaction(
            contractor_id=summit.id,
            type=TransactionType.UNLOCK.value,
            credit_amount=basement.credit_cost,
            credit_delta=-basement.credit_cost,
            related_project_id=basement.id,
        )
        summit.credit_balance = package.credits - basement.credit_cost
        session.add_all([purchase, unlock, unlock_tx])

        # ==================================================================
        # BID + CONVERSATION
        # ==================================================================
        items = [
            {"description": "Framing and insulation", "cost": "6800.00"},
            {"description": "Drywall, tape and paint", "cost": "5400.00"},
            {"description": "Electrical and pot lights", "cost": "3900.00"},
            {"description": "Vinyl plank flooring", "cost": "4200.00"},
        ]
        session.add(Bid(
            contractor_id=summit.id,
            homeowner_id=marcus.id,
            project_id=basement.id,
            contractor_name=summit.company_name,
            project_category=basement.category_name,
            itemized_costs=items,
            total_cost=sum(Decimal(i["cost"]) for i in items),
            estimated_timeline="5-6 weeks",
            notes="Permit drawings included.",
            status=BidStatus.SUBMITTED.value,
        ))

        opener = "Hi Marcus, I've sent a bid for the basement. Happy to walk the space this week."
        conversation = Conversation(
            id=uuid.uuid4(),
            conversation_key=conversation_key(summit.id, basement.id),
            contractor_id=summit.id,
            homeowner_id=marcus.id,
            project_id=basement.id,
            homeowner_name=marcus.full_name,
            contractor_name=summit.company_name,
            project_category=basement.category_name,
            last_message=message_preview(opener),
            message_count=1,
        )
        session.add(conversation)
        await session.flush()
        session.add(Message(
            conversation_id=conversation.id,
            sender_id=summit.id,
            sender_name=summit.full_name,
            content=opener,
        ))

        # ==================================================================
        # COMMIT
        # ==================================================================
        await session.commit()

        # ==================================================================
        # SUMMARY
        # ==================================================================
        print(
            f"Seeded: {len(users)} users, 4 projects, 1 unlock, 1 bid, 1 conversation "
            f"(password for every account: Testpass123)"
        )


if __name__ == "__main__":
    asyncio.run(main())
