# services/user_management/models/classes.py
from pydantic import Field
from shared.document_store import DocumentModel

CLASS_SECTIONS = "classSections"


class ClassSection(DocumentModel):
    name: str = Field(min_length=1)       # E.g., "5-A"
    class_name: str = Field("", alias="class")
    section: str = ""
