# services/user_management/schemas/classes.py

from pydantic import Field
from shared.schemas import CamelModel


class ClassSectionOut(CamelModel):
    id: str
    name: str
    class_name: str = Field("", alias="class")
    section: str
