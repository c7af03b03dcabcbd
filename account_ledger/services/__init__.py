from account_ledger.services.user_service import UserDirectory
from account_ledger.services.subscription_service import (
    SubscriptionAction, SubscriptionDocument, SubscriptionStore, parse_method_keyword
)
from account_ledger.services.credit_service import CreditLedger, generate_api_key
from account_ledger.services.transaction_service import TransactionLog, TransactionWithAmount
from account_ledger.services.usage_service import UsageReporter, UsageSummary
from account_ledger.services.purchase_service import PurchaseService

__all__ = [
    "UserDirectory",
    "SubscriptionAction",
    "SubscriptionDocument",
    "SubscriptionStore",
    "parse_method_keyword",
    "CreditLedger",
    "generate_api_key",
    "TransactionLog",
    "TransactionWithAmount",
    "UsageReporter",
    "UsageSummary",
    "PurchaseService",
]
