from erp_api.modules.accounting.services.accounts import AccountService
from erp_api.modules.accounting.services.currencies import CurrencyService
from erp_api.modules.accounting.services.journal import JournalEntryService

__all__ = ["AccountService", "CurrencyService", "JournalEntryService"]
