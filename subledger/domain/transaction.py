"""
Transaction domain constants
"""

TRANSACTION_TYPE_INCOME = "income"
TRANSACTION_TYPE_EXPENSE = "expense"

TRANSACTION_TYPES = (TRANSACTION_TYPE_INCOME, TRANSACTION_TYPE_EXPENSE)

# Категория, под которой Billing Processor пишет списания по подпискам
CATEGORY_SUBSCRIPTION = "subscription"

TRANSACTION_CATEGORIES = (CATEGORY_SUBSCRIPTION, "food", "salary", "other")
