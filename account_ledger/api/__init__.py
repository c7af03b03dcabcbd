from account_ledger.api.users import router as users_router
from account_ledger.api.credits import router as credits_router
from account_ledger.api.errors import register_error_handlers

__all__ = [
    "users_router",
    "credits_router",
    "register_error_handlers",
]
