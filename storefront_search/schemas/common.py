"""Building blocks shared by the search and category schemas."""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

# Catalog ids are opaque text (cuid2), not UUIDs
CatalogId = Annotated[str, Field(min_length=1, max_length=64, pattern=r"^[A-Za-z0-9_-]+$")]


class ReadOnlySchema(BaseModel):
    """Immutable projection of ORM rows."""

    model_config = ConfigDict(from_attributes=True, frozen=True)
