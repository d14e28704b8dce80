"""
Zone classification for an origin / destination pincode pair.

The classification is coarse and prefix based. Rules are evaluated in order
and the first match wins:

    same locality      -> Within City
    same state         -> Within State
    same region        -> Within Region
    both metro         -> Metro to Metro
    either special     -> Special Zone
    otherwise          -> Rest of India
"""

from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel

from data.pincode_zones import (
    STATE_BY_CIRCLE,
    STATE_BY_DISTRICT,
    REGION_BY_STATE,
    METRO_BY_DISTRICT,
    SPECIAL_PREFIXES,
)
from utils.exception_handler import ValidationError


class Zone(str, Enum):
    WITHIN_CITY = "Within City"
    WITHIN_STATE = "Within State"
    WITHIN_REGION = "Within Region"
    METRO_TO_METRO = "Metro to Metro"
    REST_OF_INDIA = "Rest of India"
    SPECIAL_ZONE = "Special Zone"
    NORTH_EAST_SPECIAL = "North East & Special Areas"


class PincodeInfo(BaseModel):
    pincode: str
    locality: str
    state: Optional[str] = None
    region: Optional[str] = None
    metro_city: Optional[str] = None
    is_metro: bool = False
    is_special: bool = False


# every spelling a zone arrives in at the boundary
ZONE_ALIASES = {
    "within city": Zone.WITHIN_CITY,
    "within_city": Zone.WITHIN_CITY,
    "withincity": Zone.WITHIN_CITY,
    "local": Zone.WITHIN_CITY,
    "a": Zone.WITHIN_CITY,
    "zone a": Zone.WITHIN_CITY,
    "within state": Zone.WITHIN_STATE,
    "within_state": Zone.WITHIN_STATE,
    "withinstate": Zone.WITHIN_STATE,
    "b": Zone.WITHIN_STATE,
    "zone b": Zone.WITHIN_STATE,
    "within region": Zone.WITHIN_REGION,
    "within_region": Zone.WITHIN_REGION,
    "withinregion": Zone.WITHIN_REGION,
    "regional": Zone.WITHIN_REGION,
    "metro to metro": Zone.METRO_TO_METRO,
    "metro_to_metro": Zone.METRO_TO_METRO,
    "metrotometro": Zone.METRO_TO_METRO,
    "metro": Zone.METRO_TO_METRO,
    "c": Zone.METRO_TO_METRO,
    "zone c": Zone.METRO_TO_METRO,
    "rest of india": Zone.REST_OF_INDIA,
    "rest_of_india": Zone.REST_OF_INDIA,
    "restofindia": Zone.REST_OF_INDIA,
    "roi": Zone.REST_OF_INDIA,
    "d": Zone.REST_OF_INDIA,
    "zone d": Zone.REST_OF_INDIA,
    "special zone": Zone.SPECIAL_ZONE,
    "special_zone": Zone.SPECIAL_ZONE,
    "specialzone": Zone.SPECIAL_ZONE,
    "special": Zone.SPECIAL_ZONE,
    "e": Zone.SPECIAL_ZONE,
    "zone e": Zone.SPECIAL_ZONE,
    "north east & special areas": Zone.NORTH_EAST_SPECIAL,
    "north east": Zone.NORTH_EAST_SPECIAL,
    "north_east": Zone.NORTH_EAST_SPECIAL,
    "northeast": Zone.NORTH_EAST_SPECIAL,
}


def normalize_zone(value: Union[str, Zone]) -> Zone:
    if isinstance(value, Zone):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("zone must be a non-empty string", details={"zone": value})

    key = " ".join(value.strip().lower().split())
    zone = ZONE_ALIASES.get(key)
    if zone is None:
        raise ValidationError(f"Unknown zone: {value}", details={"zone": value})
    return zone


def normalize_pincode(pincode: Union[str, int]) -> str:
    if isinstance(pincode, bool):
        raise ValidationError("Invalid pincode", details={"pincode": pincode})
    if isinstance(pincode, int):
        pincode = str(pincode)
    if not isinstance(pincode, str):
        raise ValidationError("Invalid pincode", details={"pincode": pincode})

    pincode = pincode.strip()
    if len(pincode) != 6 or not pincode.isascii() or not pincode.isdigit():
        raise ValidationError(
            "Pincode must be exactly 6 digits", details={"pincode": pincode}
        )
    if pincode[0] == "0":
        raise ValidationError(
            "Pincode cannot start with 0", details={"pincode": pincode}
        )
    return pincode


def describe_pincode(pincode: Union[str, int]) -> PincodeInfo:
    pincode = normalize_pincode(pincode)
    district = pincode[:3]
    circle = pincode[:2]

    metro_city = METRO_BY_DISTRICT.get(district)
    state = STATE_BY_DISTRICT.get(district) or STATE_BY_CIRCLE.get(circle)

    return PincodeInfo(
        pincode=pincode,
        locality=metro_city or district,
        state=state,
        region=REGION_BY_STATE.get(state) if state else None,
        metro_city=metro_city,
        is_metro=metro_city is not None,
        is_special=pincode.startswith(SPECIAL_PREFIXES),
    )


def classify(origin_pincode: Union[str, int], destination_pincode: Union[str, int]) -> Zone:
    origin = describe_pincode(origin_pincode)
    destination = describe_pincode(destination_pincode)

    if origin.locality == destination.locality:
        return Zone.WITHIN_CITY

    # unknown circles never match each other
    if origin.state and origin.state == destination.state:
        return Zone.WITHIN_STATE

    if origin.region and origin.region == destination.region:
        return Zone.WITHIN_REGION

    if origin.is_metro and destination.is_metro:
        return Zone.METRO_TO_METRO

    if origin.is_special or destination.is_special:
        return Zone.SPECIAL_ZONE

    return Zone.REST_OF_INDIA
