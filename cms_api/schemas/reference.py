from pydantic import BaseModel, ConfigDict


class StateRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class CityRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    state_id: int
