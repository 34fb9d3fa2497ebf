"""
Request and record models for the Transport Service.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class TransportMode(str, Enum):
    """Searchable transport modes."""
    FLIGHTS = "flights"
    TRAINS = "trains"
    BUSES = "buses"
    FOUR_WHEELERS = "4wheelers"


class TripKind(str, Enum):
    """Remote trip document kinds."""
    SAVED = "saved"
    SEARCH = "search"


class SearchRequest(BaseModel):
    """Body of POST /transport/search.

    Every field is optional at the schema level so that missing values are
    reported as a 400 validation error rather than a schema error.
    """
    model_config = ConfigDict(populate_by_name=True)

    source: Optional[str] = Field(None, description="Origin city or airport code")
    destination: Optional[str] = Field(None, description="Destination city or airport code")
    date: Optional[str] = Field(None, description="Travel date (YYYY-MM-DD)")
    mode: Optional[str] = Field(None, description="flights, trains, buses or 4wheelers")
    user_id: Optional[str] = Field(None, alias="userId", description="Records search history when set")


class TripRequest(BaseModel):
    """Body of POST /transport/trip/add and /transport/trip/sync."""
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(None, alias="userId")
    trip_data: Optional[Dict[str, Any]] = Field(None, alias="tripData")


class DeleteTripRequest(BaseModel):
    """Body of DELETE /transport/trip/{trip_id}."""
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(None, alias="userId")


@dataclass
class RemoteTrip:
    """Trip document held by the remote store.

    Identity is the ``(user_id, id)`` pair for saved trips and search
    history alike.
    """

    id: str
    user_id: str
    kind: TripKind
    payload: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[str] = None
    synced_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the camelCase wire/document shape."""
        data: Dict[str, Any] = {
            "id": self.id,
            "userId": self.user_id,
            "kind": self.kind.value,
            "payload": self.payload,
            "createdAt": self.created_at,
        }
        if self.synced_at is not None:
            data["syncedAt"] = self.synced_at
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RemoteTrip":
        return cls(
            id=str(data["id"]),
            user_id=str(data["userId"]),
            kind=TripKind(data.get("kind", TripKind.SAVED.value)),
            payload=dict(data.get("payload") or {}),
            created_at=data.get("createdAt"),
            synced_at=data.get("syncedAt"),
        )
