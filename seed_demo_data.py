"""
Seed demo data for user id=1 (assets, subscriptions, a few expenses).
Run:  python seed_demo_data.py
"""
import sys
from datetime import date, timedelta

from subledger.infrastructure.db.session import get_session_factory
from subledger.infrastructure.db.models import User, Asset
from subledger.application.assets import CreateAssetUseCase
from subledger.application.subscriptions import CreateSubscriptionUseCase
from subledger.application.transactions import CreateTransactionUseCase

db = get_session_factory()()
USER_ID = 1

user = db.get(User, USER_ID)
if not user:
    user = User(id=USER_ID, username="demo", email="demo@example.com")
    db.add(user)
    db.commit()
    print(f"Created user id={USER_ID} (demo)")

existing = db.query(Asset).filter_by(user_id=USER_ID).count()
if existing > 0:
    print(f"Demo data exists ({existing} assets), nothing to do")
    db.close()
    sys.exit(0)

today = date.today()

# ── assets ───────────────────────────────────────────────────────
bank = CreateAssetUseCase(db).execute(USER_ID, "ICBC debit card", "bank", balance="8000.00")
alipay = CreateAssetUseCase(db).execute(USER_ID, "Alipay", "payment", balance="650.00")
CreateAssetUseCase(db).execute(USER_ID, "Cash", "cash", balance="300.00")

# ── subscriptions ────────────────────────────────────────────────
subs = [
    ("Netflix", "video", "68.00", "monthly", today, bank),
    ("Spotify", "music", "15.00", "monthly", today + timedelta(days=3), alipay),
    ("iCloud 200GB", "cloud", "21.00", "monthly", today + timedelta(days=10), alipay),
    ("JetBrains", "software", "1499.00", "yearly", today + timedelta(days=40), bank),
    ("Gym", "other", "120.00", "weekly", today - timedelta(days=2), None),
]
for name, category, amount, cycle, next_date, asset_id in subs:
    CreateSubscriptionUseCase(db).execute(
        user_id=USER_ID,
        name=name,
        category=category,
        amount=amount,
        billing_cycle=cycle,
        next_billing_date=next_date,
        asset_id=asset_id,
    )

# ── transactions ─────────────────────────────────────────────────
CreateTransactionUseCase(db).execute(
    USER_ID, "income", "salary", "12000.00", today.replace(day=1), "Salary", asset_id=bank,
)
for days_ago, amount in [(1, "32.50"), (4, "58.00"), (9, "17.80")]:
    CreateTransactionUseCase(db).execute(
        USER_ID, "expense", "food", amount, today - timedelta(days=days_ago), "Groceries",
        asset_id=alipay,
    )

print(f"Seeded: 3 assets, {len(subs)} subscriptions, 4 transactions")
db.close()
