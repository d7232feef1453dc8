from pydantic import BaseModel, ConfigDict, Field
from typing import List, Literal, Optional, Dict, Any


class Location(BaseModel):
    type: Literal["Point"] = "Point"
    # GeoJSON order: [longitude, latitude]
    coordinates: List[float] = Field(min_length=2, max_length=2)
    address: str = "No address provided"
    city: str = "Unknown"


class UserRating(BaseModel):
    aggregate_rating: float = 0.0
    rating_text: str = "No Rating"
    votes: int = 0


class Restaurant(BaseModel):
    """Canonical restaurant document, shared by the importer and the API."""
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: Optional[str] = None
    name: str = "Unknown"
    cuisines: str = "Not specified"
    location: Location
    average_cost_for_two: float = 0.0
    price_range: int = 1
    user_rating: UserRating = Field(default_factory=UserRating)
    featured_image: str = ""
    menu_url: str = ""

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump()


class RestaurantPage(BaseModel):
    totalRestaurants: int
    currentPage: int
    totalPages: int
    restaurants: List[Restaurant]


class NearbyResponse(BaseModel):
    total: int
    restaurants: List[Restaurant]


class ImageSearchResponse(BaseModel):
    detectedFood: str
    total: int
    restaurants: List[Restaurant]


class ErrorResponse(BaseModel):
    message: str
    error: Optional[str] = None
