"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path
from typing import List, Literal, Optional

import pendulum
import yaml
from pendulum.tz.exceptions import InvalidTimezone
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.models import Service
from .domain.schedule import DEFAULT_OPENING_HOURS, BusinessSchedule
from .domain.timegrid import SlotSize, TimeOfDay
from .services.booking_service import BusinessProfile


class SlotSizeConfig(BaseModel):
    """Slot granularity as the settings page stores it."""
    value: int = 30
    unit: Literal["minutes", "hours"] = "minutes"

    @model_validator(mode="after")
    def validate_range(self) -> "SlotSizeConfig":
        """Ensure the normalized slot size is within 1-480 minutes."""
        self.to_slot_size()
        return self

    def to_slot_size(self) -> SlotSize:
        return SlotSize(value=self.value, unit=self.unit)


class OpeningHourConfig(BaseModel):
    """One weekday's opening hours. ``day_of_week`` uses Sunday=0."""
    day_of_week: int
    open_time: str = "08:00"
    close_time: str = "17:00"
    is_open: bool = True

    @field_validator("day_of_week")
    @classmethod
    def validate_day(cls, v: int) -> int:
        """Validate weekday is between 0 and 6."""
        if not 0 <= v <= 6:
            raise ValueError(f"day_of_week must be between 0 and 6, got {v}")
        return v

    @field_validator("open_time", "close_time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        return TimeOfDay.parse(v).format()

    @model_validator(mode="after")
    def validate_order(self) -> "OpeningHourConfig":
        """Ensure the day opens before it closes."""
        if self.is_open and TimeOfDay.parse(self.open_time) >= TimeOfDay.parse(self.close_time):
            raise ValueError(
                f"open_time {self.open_time} must be before close_time {self.close_time}"
            )
        return self


class ServiceConfig(BaseModel):
    id: str
    name: str = ""
    duration_minutes: int
    price_cents: int = 0
    hidden: bool = False

    @field_validator("duration_minutes")
    @classmethod
    def validate_duration(cls, value: int) -> int:
        """Ensure service duration is positive."""
        if value <= 0:
            raise ValueError("duration_minutes must be greater than zero")
        return value

    @field_validator("price_cents")
    @classmethod
    def validate_price(cls, value: int) -> int:
        if value < 0:
            raise ValueError("price_cents must not be negative")
        return value

    def to_service(self) -> Service:
        return Service(
            id=self.id,
            duration_minutes=self.duration_minutes,
            price_cents=self.price_cents,
            name=self.name,
            hidden=self.hidden,
        )


class StaffConfig(BaseModel):
    """Team member who can be assigned to bookings."""
    id: str
    name: str = ""
    email: str = ""


class BusinessConfig(BaseModel):
    """Bookable configuration of one business."""
    id: str
    name: str = ""
    timezone: str = "Europe/Berlin"
    slot_size: SlotSizeConfig = Field(default_factory=SlotSizeConfig)
    allow_double_booking: bool = True
    strict_slot_fit: bool = False
    time_format: Literal["12", "24"] = "24"
    opening_hours: List[OpeningHourConfig] = Field(
        default_factory=lambda: [OpeningHourConfig(**row) for row in DEFAULT_OPENING_HOURS]
    )
    services: List[ServiceConfig] = Field(default_factory=list)
    staff: List[StaffConfig] = Field(default_factory=list)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Ensure the timezone is a known IANA name."""
        try:
            pendulum.timezone(value)
        except InvalidTimezone as exc:
            raise ValueError(f"Unknown timezone '{value}'") from exc
        return value

    @field_validator("time_format", mode="before")
    @classmethod
    def coerce_time_format(cls, value: object) -> object:
        # YAML reads an unquoted 12 or 24 as an integer
        return str(value) if isinstance(value, int) else value

    @field_validator("opening_hours")
    @classmethod
    def validate_unique_days(cls, value: List[OpeningHourConfig]) -> List[OpeningHourConfig]:
        """Ensure each weekday appears at most once."""
        days = [row.day_of_week for row in value]
        duplicates = sorted({day for day in days if days.count(day) > 1})
        if duplicates:
            raise ValueError(f"Duplicate opening hours for day_of_week {duplicates}")
        return value

    @field_validator("services")
    @classmethod
    def validate_services(cls, value: List[ServiceConfig]) -> List[ServiceConfig]:
        seen: set[str] = set()
        for service in value:
            if service.id in seen:
                raise ValueError(f"Duplicate service id detected: {service.id}")
            seen.add(service.id)
        return value

    @field_validator("staff")
    @classmethod
    def validate_staff(cls, value: List[StaffConfig]) -> List[StaffConfig]:
        """Ensure staff ids and emails are unique."""
        seen_ids: set[str] = set()
        seen_emails: set[str] = set()
        for member in value:
            email_key = member.email.lower()
            if member.id in seen_ids:
                raise ValueError(f"Duplicate staff id detected: {member.id}")
            if email_key and email_key in seen_emails:
                raise ValueError(f"Duplicate staff email detected: {member.email}")
            seen_ids.add(member.id)
            if email_key:
                seen_emails.add(email_key)
        return value

    def to_schedule(self) -> BusinessSchedule:
        return BusinessSchedule.from_opening_hours(
            [row.model_dump() for row in self.opening_hours],
            slot_size=self.slot_size.to_slot_size(),
            allow_double_booking=self.allow_double_booking,
            timezone=self.timezone,
            strict_slot_fit=self.strict_slot_fit,
        )

    def to_profile(self) -> BusinessProfile:
        return BusinessProfile(
            id=self.id,
            schedule=self.to_schedule(),
            services={service.id: service.to_service() for service in self.services},
            staff_ids=frozenset(member.id for member in self.staff),
            name=self.name,
            time_format=self.time_format,
        )

    def find_staff(self, identifier: str) -> StaffConfig | None:
        """Find a staff member by id or (case-insensitive) name."""
        for member in self.staff:
            if member.id == identifier or member.name.lower() == identifier.lower():
                return member
        return None


class AppConfig(BaseModel):
    """Application configuration."""
    businesses: List[BusinessConfig] = Field(default_factory=list)
    bookings_file: str = "bookings.json"
    log_level: str = "WARNING"
    config_api_url: Optional[str] = None

    @field_validator("businesses")
    @classmethod
    def validate_businesses(cls, value: List[BusinessConfig]) -> List[BusinessConfig]:
        """Ensure business ids are unique."""
        seen: set[str] = set()
        for business in value:
            if business.id in seen:
                raise ValueError(f"Duplicate business id detected: {business.id}")
            seen.add(business.id)
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log_level '{value}'")
        return level

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        return cls(**data)

    def find_business(self, business_id: str) -> BusinessConfig | None:
        for business in self.businesses:
            if business.id == business_id:
                return business
        return None

    def bookings_path(self, config_path: Path) -> Path:
        """Resolve ``bookings_file`` relative to the config file's directory."""
        path = Path(self.bookings_file)
        return path if path.is_absolute() else config_path.parent / path


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
