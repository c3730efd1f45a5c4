from pydantic import BaseModel, Field


class Target(BaseModel):
    """
    Data model representing a monitored endpoint submitted by the dashboard.
    """

    id: str = Field(min_length=1)
    url: str = Field(min_length=1)

    def __repr__(self):
        return f"Target(id={self.id}, url={self.url})"
