from typing import Any, Dict, Optional


class ReconciliationError(Exception):
    """Base error for a reconciliation run"""
    def __init__(
        self,
        message: str,
        status_code: int = 400,
        error_code: str = "RECON_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class MalformedPayloadError(ReconciliationError):
    """Authority or ledger data does not have the expected shape"""
    def __init__(self, message: str = "Malformed source data", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=400,
            error_code="MALFORMED_PAYLOAD",
            details=details
        )


class InvalidPeriodError(ReconciliationError):
    """Tax period is not a valid MMYYYY string"""
    def __init__(self, message: str = "Period must be in MMYYYY format (e.g., 082025)", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=400,
            error_code="INVALID_PERIOD",
            details=details
        )


class DuplicateRecordError(ReconciliationError):
    """Two records on the same side share a reconciliation key"""
    def __init__(self, message: str = "Duplicate reconciliation key", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=409,
            error_code="DUPLICATE_KEY",
            details=details
        )


class LedgerSourceError(ReconciliationError):
    """Purchase ledger files could not be located or read"""
    def __init__(self, message: str = "Purchase data files not found", status_code: int = 404, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status_code,
            error_code="LEDGER_SOURCE",
            details=details
        )


class UnparsableDateError(ReconciliationError):
    """A single ledger date could not be parsed; the record is skipped, never surfaced"""
    def __init__(self, raw: str):
        super().__init__(
            message=f"Unparsable date: {raw!r}",
            status_code=422,
            error_code="UNPARSABLE_DATE",
            details={"raw": raw}
        )
