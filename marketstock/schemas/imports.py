# marketstock/schemas/imports.py
from pydantic import BaseModel


# Result of a CSV bulk import
class ImportReport(BaseModel):
    total: int
    created: int
    skipped: int
    failed: int
