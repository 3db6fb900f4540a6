# marketstock/config.py
from pydantic_settings import BaseSettings
from typing import ClassVar, Literal, Optional
from pathlib import Path

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"

DeletePolicy = Literal["nullify", "block", "cascade"]


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./database_marketstock.db"
    FRONTEND_URL: Optional[str] = None
    LOG_LEVEL: str = "INFO"

    # Company block printed on purchase orders
    COMPANY_NAME: str = "Mon Stock"
    COMPANY_ADDRESS: str = "123 Rue du Commerce"
    COMPANY_PHONE: str = "+33 1 23 45 67 89"
    VAT_RATE: float = 20.0

    # What happens to products that reference a deleted supplier/category
    SUPPLIER_DELETE_POLICY: DeletePolicy = "nullify"
    CATEGORY_DELETE_POLICY: DeletePolicy = "nullify"

    # None lets the thread pool pick its own size
    IMPORT_MAX_WORKERS: Optional[int] = None

    FONT_DIR: str = "assets/fonts"

    class Config:
        env_file: ClassVar[str] = str(env_path)
        extra: ClassVar[str] = "ignore"


settings = Settings()
