from decimal import Decimal
from typing import List, Optional

from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    PROJECT_NAME: str = "GSTR-2A Reconciliation Service"
    LOG_LEVEL: str = "INFO"

    # Reconciliation defaults (overridable per run)
    DEFAULT_TOLERANCE: Decimal = Decimal("2.00")
    DEFAULT_FAMILIES: List[str] = ["B2B"]
    DUPLICATE_POLICY: str = "first"

    # Purchase ledger source: <DBF_FOLDER_PATH>/data/json/{pur,CASH}.json
    DBF_FOLDER_PATH: Optional[str] = None

    # Mismatch explanations
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o-mini"

    class Config:
        case_sensitive = True

settings = Settings()
