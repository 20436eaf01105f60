from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, HTTPException, status

from src.booking.api.schemas import CountryResponse
from src.booking.domain.services.timezones import (
    search_countries, is_supported_country, timezone_for_country, format_for_display,
)


router = APIRouter(prefix="/api/countries", tags=["countries"])


@router.get("", response_model=list[CountryResponse])
def list_countries(search: Optional[str] = None):
    return search_countries(search)


@router.get("/{country}/timezone")
def country_timezone(country: str):
    if not is_supported_country(country):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Country not supported")
    now = datetime.now(timezone.utc)
    return {
        "country": country,
        "timezone": timezone_for_country(country),
        "current_time": format_for_display(now, country, "long"),
    }
