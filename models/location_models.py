import math
from datetime import datetime
from typing import Literal, Tuple, Union
from pydantic import BaseModel, ConfigDict, field_validator

UserId = Union[int, str]

class Position(BaseModel):
    """GeoJSON point. Coordinates are (longitude, latitude)."""
    model_config = ConfigDict(frozen=True)

    type: Literal["Point"] = "Point"
    coordinates: Tuple[float, float]

    @field_validator("coordinates")
    @classmethod
    def check_coordinates(cls, value):
        longitude, latitude = value
        if not (math.isfinite(longitude) and math.isfinite(latitude)):
            raise ValueError("coordinates must be finite numbers")
        if not -180 <= longitude <= 180:
            raise ValueError("longitude must be between -180 and 180")
        if not -90 <= latitude <= 90:
            raise ValueError("latitude must be between -90 and 90")
        return value

    @classmethod
    def from_lat_lon(cls, latitude: float, longitude: float) -> "Position":
        return cls(coordinates=(longitude, latitude))

    @property
    def longitude(self) -> float:
        return self.coordinates[0]

    @property
    def latitude(self) -> float:
        return self.coordinates[1]

class UserLocation(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    position: Position
    updated_at: datetime

class SetLocationRequest(BaseModel):
    latitude: float
    longitude: float
