"""
Asset domain constants
"""

ASSET_TYPE_BANK = "bank"            # Банковский счёт
ASSET_TYPE_PAYMENT = "payment"      # Платёжный сервис (Alipay, PayPal ...)
ASSET_TYPE_CASH = "cash"            # Наличные
ASSET_TYPE_INVESTMENT = "investment"

ASSET_TYPES = (ASSET_TYPE_BANK, ASSET_TYPE_PAYMENT, ASSET_TYPE_CASH, ASSET_TYPE_INVESTMENT)
