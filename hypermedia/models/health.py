from pydantic import BaseModel, Field


class Health(BaseModel):
    status: int
    status_message: str
    timestamp: str = Field(
        ...,
        description="UTC time the check was answered (ISO 8601)"
    )
    entities: int = Field(
        0,
        description="Number of entities in the served graph snapshot"
    )
