"""Base model for partial updates."""

from typing import ClassVar, Tuple

from pydantic import BaseModel, model_validator


class PartialUpdate(BaseModel):
    """Every field is optional; only fields the caller sends are written.

    Columns listed in ``required_columns`` are NOT NULL in the database, so
    they may be omitted but never sent as an explicit null.
    """

    required_columns: ClassVar[Tuple[str, ...]] = ()

    @model_validator(mode="after")
    def reject_null_required_columns(self):
        nulled = [
            name
            for name in self.required_columns
            if name in self.model_fields_set and getattr(self, name) is None
        ]
        if nulled:
            raise ValueError(f"Fields cannot be null: {', '.join(nulled)}")
        return self
