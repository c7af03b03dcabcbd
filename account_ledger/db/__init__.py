from account_ledger.db.models import Base, User, Credit, Package, Transaction
from account_ledger.db.database import get_db, init_db, drop_db, async_session_maker, engine

__all__ = [
    "Base",
    "User",
    "Credit",
    "Package",
    "Transaction",
    # Database
    "get_db",
    "init_db",
    "drop_db",
    "async_session_maker",
    "engine",
]
