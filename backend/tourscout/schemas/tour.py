"""Single-tour import schemas."""

from pydantic import AnyHttpUrl, BaseModel, Field


class TourImportRequest(BaseModel):
    """Body of POST /tours/import."""

    url: AnyHttpUrl = Field(..., examples=["https://example-tours.com/tours/city-walk"])
