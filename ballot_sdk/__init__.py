from ballot_sdk.client import LedgerAPIError, LedgerClient

__all__ = ["LedgerAPIError", "LedgerClient"]
