# backend/stockledger/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/stockledger.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///stockledger.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Ledger transactions: sales retry on write conflicts, debts and
    # payments run a single attempt unless configured otherwise.
    SALE_RETRY_ATTEMPTS = int(os.environ.get("SALE_RETRY_ATTEMPTS", "3"))
    DEBT_RETRY_ATTEMPTS = int(os.environ.get("DEBT_RETRY_ATTEMPTS", "1"))
    RETRY_BACKOFF_SECONDS = float(os.environ.get("RETRY_BACKOFF_SECONDS", "0"))

    # Lock-wait and whole-transaction budgets (seconds)
    LOCK_WAIT_SECONDS = int(os.environ.get("LOCK_WAIT_SECONDS", "15"))
    TRANSACTION_TIMEOUT_SECONDS = int(os.environ.get("TRANSACTION_TIMEOUT_SECONDS", "30"))

    # "remaining" or "amount_taken", see debt_service.update_debt.
    # The default departs from the legacy behaviour ("amount_taken": status
    # from the new total, remaining_amount left as is); set "amount_taken"
    # to reproduce it.
    DEBT_EDIT_STATUS_RULE = os.environ.get("DEBT_EDIT_STATUS_RULE", "remaining")

    # Header carrying the current actor's user id (resolved upstream)
    ACTOR_HEADER = "X-Actor-Id"

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
