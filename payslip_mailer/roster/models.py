from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, Field, field_validator

EMAIL_PATTERN = r"^\S+@\S+\.\S+$"


class RecipientInput(BaseModel):
    """Validated administrator input for creating or updating a recipient."""

    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    name: str = Field(min_length=1)
    email: str = Field(pattern=EMAIL_PATTERN)
    secret_hint: str = Field(min_length=1)
    document_filename: str = Field(min_length=1)
    secret: str = Field(min_length=1, repr=False)

    @field_validator("email")
    @classmethod
    def _lowercase_email(cls, value: str) -> str:
        return value.lower()


@dataclass
class RosterImportResult:
    """Outcome of a spreadsheet import."""

    created: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)
