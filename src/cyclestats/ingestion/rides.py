from __future__ import annotations

import json
import logging
from typing import Annotated, Any, Iterable, NoReturn, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, TypeAdapter, ValidationError

from cyclestats.schemas.core import PaymentMethod, PriceBreakdownItem, Ride
from cyclestats.utils.dates import MAX_EPOCH_MS, MIN_EPOCH_MS


logger = logging.getLogger(__name__)


class RideValidationError(ValueError):
    """Raised when pasted ride data is not valid JSON or does not match the ride schema."""


# JSON numbers only (no numeric strings or booleans), within the calendar range of the analytics.
EpochMs = Annotated[StrictFloat, Field(ge=MIN_EPOCH_MS, lt=MAX_EPOCH_MS)]


class PriceBreakdownItemIn(BaseModel):
    title: Optional[str]
    amount: Optional[str]


class PaymentMethodIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    card_type: Optional[str] = Field(default=None, alias="cardType")
    last_four: Optional[str] = Field(default=None, alias="lastFour")
    client_payment_method: Optional[str] = Field(default=None, alias="clientPaymentMethod")


class RideIn(BaseModel):
    """
    One ride as exported by the ride-details console script.

    Every key must be present; values may be null.
    """

    model_config = ConfigDict(populate_by_name=True, allow_inf_nan=False)

    ride_id: Optional[str] = Field(alias="rideId")
    start_time_ms: Optional[EpochMs] = Field(alias="startTimeMs")
    end_time_ms: Optional[EpochMs] = Field(alias="endTimeMs")
    start_address: Optional[str] = Field(alias="startAddress")
    end_address: Optional[str] = Field(alias="endAddress")
    price: Optional[str]
    price_breakdown: Optional[list[PriceBreakdownItemIn]] = Field(alias="priceBreakdown")
    payment_method: Optional[PaymentMethodIn] = Field(alias="paymentMethod")

    def to_ride(self) -> Ride:
        return Ride(
            ride_id=self.ride_id,
            start_time_ms=None if self.start_time_ms is None else int(self.start_time_ms),
            end_time_ms=None if self.end_time_ms is None else int(self.end_time_ms),
            start_address=self.start_address,
            end_address=self.end_address,
            price=self.price,
            price_breakdown=tuple(
                PriceBreakdownItem(title=item.title, amount=item.amount) for item in self.price_breakdown or []
            ),
            payment_method=(
                None
                if self.payment_method is None
                else PaymentMethod(
                    card_type=self.payment_method.card_type,
                    last_four=self.payment_method.last_four,
                    client_payment_method=self.payment_method.client_payment_method,
                )
            ),
        )


_RIDES_ADAPTER = TypeAdapter(list[RideIn])


def _reject_constant(name: str) -> NoReturn:
    # `json` accepts NaN and Infinity, which are not valid JSON.
    raise RideValidationError(f"Invalid JSON: unexpected token {name}")


def _first_error_message(err: ValidationError) -> str:
    issues = err.errors()
    if not issues:
        return "Invalid ride data structure"
    first = issues[0]
    path = ".".join(str(part) for part in first.get("loc", ()))
    return f"Validation error at ride {path}: {first.get('msg', 'invalid value')}"


def parse_rides(payload: Any) -> list[Ride]:
    """Validate already-decoded JSON (a list of ride objects) into `Ride` records."""

    try:
        validated = _RIDES_ADAPTER.validate_python(payload)
    except ValidationError as e:
        raise RideValidationError(_first_error_message(e)) from e
    return [item.to_ride() for item in validated]


def parse_rides_json(text: str) -> list[Ride]:
    """
    Validate pasted ride JSON.

    Raises `RideValidationError` with a user-facing message for empty input, malformed JSON
    or the first schema violation.
    """

    if not text or not text.strip():
        raise RideValidationError("Please paste your JSON data")
    try:
        payload = json.loads(text, parse_constant=_reject_constant)
    except json.JSONDecodeError as e:
        raise RideValidationError(f"Invalid JSON: {e.msg}") from e
    rides = parse_rides(payload)
    logger.info("Validated %d rides", len(rides))
    return rides


def ride_to_json(ride: Ride) -> dict[str, Any]:
    """Inverse of `RideIn.to_ride`, producing the camelCase export shape."""

    return {
        "rideId": ride.ride_id,
        "startTimeMs": ride.start_time_ms,
        "endTimeMs": ride.end_time_ms,
        "startAddress": ride.start_address,
        "endAddress": ride.end_address,
        "price": ride.price,
        "priceBreakdown": [{"title": i.title, "amount": i.amount} for i in ride.price_breakdown],
        "paymentMethod": (
            None
            if ride.payment_method is None
            else {
                "cardType": ride.payment_method.card_type,
                "lastFour": ride.payment_method.last_four,
                "clientPaymentMethod": ride.payment_method.client_payment_method,
            }
        ),
    }


def rides_to_json(rides: Iterable[Ride]) -> list[dict[str, Any]]:
    return [ride_to_json(r) for r in rides]
