"""Request body schemas for the JSON API."""

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from .errors import ValidationError
from .models import CustomerStatus, VehicleStatus

EMAIL_PATTERN = r'^[^@\s]+@[^@\s]+\.[^@\s]+$'


class RequestModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True,
                              str_strip_whitespace=True, use_enum_values=True)


def parse_body(schema, data):
    """Validate ``data`` against ``schema``, raising our ValidationError."""
    if data is None:
        raise ValidationError("Request body cannot be empty")
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON format")
    try:
        return schema.model_validate(data)
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        field = '.'.join(str(part) for part in first['loc'])
        message = f"{field}: {first['msg']}" if field else first['msg']
        raise ValidationError(message) from exc


def _check_date_order(start, end):
    if start is not None and end is not None and end < start:
        raise ValueError("endDate cannot be before startDate")


# ---------------------------------------------------------------------------
# Bookings

class BookingCreate(RequestModel):
    vehicle_id: int
    start_date: date
    end_date: date
    total_amount: Optional[float] = Field(default=None, ge=0)
    customer_id: Optional[int] = None
    temp_name: Optional[str] = None
    temp_email: Optional[str] = None
    temp_phone: Optional[str] = None
    pickup_location: Optional[str] = None
    dropoff_location: Optional[str] = None
    special_requests: Optional[str] = None
    insurance: Optional[str] = None
    mileage_policy: Optional[str] = None
    fuel_policy: Optional[str] = None
    extras: List[str] = Field(default_factory=list)

    @model_validator(mode='after')
    def check_dates(self):
        _check_date_order(self.start_date, self.end_date)
        return self


class BookingUpdate(RequestModel):
    id: int
    vehicle_id: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    total_amount: Optional[float] = Field(default=None, ge=0)
    customer_id: Optional[int] = None
    temp_name: Optional[str] = None
    temp_email: Optional[str] = None
    temp_phone: Optional[str] = None
    pickup_location: Optional[str] = None
    dropoff_location: Optional[str] = None
    special_requests: Optional[str] = None
    insurance: Optional[str] = None
    mileage_policy: Optional[str] = None
    fuel_policy: Optional[str] = None
    extras: Optional[List[str]] = None
    status: Optional[str] = Field(default=None, min_length=1, max_length=50)

    @model_validator(mode='after')
    def check_dates(self):
        _check_date_order(self.start_date, self.end_date)
        return self

    def changes(self) -> dict:
        """Fields the caller actually sent, minus the id."""
        data = self.model_dump(exclude_unset=True)
        data.pop('id', None)
        return data


# ---------------------------------------------------------------------------
# Customers

class CustomerCreate(RequestModel):
    first_name: str = Field(min_length=1, max_length=120)
    last_name: str = Field(min_length=1, max_length=120)
    email: str = Field(pattern=EMAIL_PATTERN, max_length=200)
    phone: Optional[str] = Field(default=None, max_length=50)
    status: CustomerStatus = CustomerStatus.ACTIVE.value


class CustomerUpdate(RequestModel):
    id: int
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    email: Optional[str] = Field(default=None, pattern=EMAIL_PATTERN, max_length=200)
    phone: Optional[str] = Field(default=None, max_length=50)
    status: Optional[CustomerStatus] = None

    def changes(self) -> dict:
        data = self.model_dump(exclude_unset=True)
        data.pop('id', None)
        return data


# ---------------------------------------------------------------------------
# Vehicles

def _check_year(year):
    if year is not None and not 1900 <= year <= date.today().year + 1:
        raise ValueError(f"year must be between 1900 and {date.today().year + 1}")
    return year


class VehicleCreate(RequestModel):
    make: str = Field(min_length=1, max_length=120)
    model: str = Field(min_length=1, max_length=120)
    year: int
    daily_rate: float = Field(gt=0)
    status: VehicleStatus = VehicleStatus.AVAILABLE.value

    @field_validator('year')
    @classmethod
    def check_year(cls, value):
        return _check_year(value)


class VehicleUpdate(RequestModel):
    id: int
    make: Optional[str] = Field(default=None, min_length=1, max_length=120)
    model: Optional[str] = Field(default=None, min_length=1, max_length=120)
    year: Optional[int] = None
    daily_rate: Optional[float] = Field(default=None, gt=0)
    status: Optional[VehicleStatus] = None

    @field_validator('year')
    @classmethod
    def check_year(cls, value):
        return _check_year(value)

    def changes(self) -> dict:
        data = self.model_dump(exclude_unset=True)
        data.pop('id', None)
        return data
