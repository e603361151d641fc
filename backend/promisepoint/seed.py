import os
from decimal import Decimal
from sqlalchemy import select
from promisepoint.db.session import SessionLocal
from promisepoint.models.loan_type import LoanType
from promisepoint.services.money import naira_to_kobo

DEFAULT_LOAN_TYPES = [
    {
        "name": "Input Credit",
        "description": "Seeds, fertiliser and agro-chemicals delivered at planting.",
        "user_type": "farmer",
        "category": "input_credit",
        "interest_rate": Decimal("5.00"),
        "duration_months": 6,
    },
    {
        "name": "Farm Tools",
        "description": "Hand tools and sprayers.",
        "user_type": "farmer",
        "category": "farm_tools",
        "interest_rate": Decimal("7.50"),
        "duration_months": 12,
    },
    {
        "name": "Staff Personal Loan",
        "description": None,
        "user_type": "staff",
        "category": "personal_loan",
        "interest_rate": Decimal("10.00"),
        "duration_months": 12,
        "min_amount": naira_to_kobo(50_000),
        "max_amount": naira_to_kobo(1_000_000),
    },
    {
        "name": "Staff Emergency Loan",
        "description": None,
        "user_type": "staff",
        "category": "emergency_loan",
        "interest_rate": Decimal("5.00"),
        "duration_months": 3,
        "min_amount": naira_to_kobo(10_000),
        "max_amount": naira_to_kobo(200_000),
    },
]

def main():
    created_by = os.environ.get("SEED_ACTOR", "seed")

    db = SessionLocal()
    try:
        for row in DEFAULT_LOAN_TYPES:
            existing = db.execute(
                select(LoanType).where(LoanType.name == row["name"], LoanType.user_type == row["user_type"])
            ).scalar_one_or_none()
            if existing:
                continue
            db.add(LoanType(created_by=created_by, is_active=True, **row))
        db.commit()
    finally:
        db.close()

if __name__ == "__main__":
    main()
