"""
Actions the concierge model may call.

Each tool has an argument model; raw JSON arguments are turned into that
model exactly once, when the tool call has finished streaming.
"""

import copy
from dataclasses import dataclass
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from app.chat.entity.chat import ToolValidationError, sanitize_text
from app.itinerary.entity.itinerary import ItineraryCategory

CREATE_SERVICE_REQUEST = "create_service_request"
ADD_TO_ITINERARY = "add_to_itinerary"

REQUEST_TYPE_MAX = 100
DETAILS_MAX = 500
TITLE_MAX = 100
DESCRIPTION_MAX = 500
LOCATION_MAX = 200


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class CreateServiceRequestArgs(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    request_type: str = Field(alias="requestType")
    details: Optional[str] = None

    @field_validator("request_type", mode="before")
    @classmethod
    def _clean_request_type(cls, value: Any) -> str:
        cleaned = sanitize_text(value, REQUEST_TYPE_MAX)
        if not cleaned:
            raise ValueError("requestType must not be empty")
        return cleaned

    @field_validator("details", mode="before")
    @classmethod
    def _clean_details(cls, value: Any) -> Optional[str]:
        return sanitize_text(value, DETAILS_MAX) or None


class AddToItineraryArgs(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    category: ItineraryCategory = ItineraryCategory.OTHER
    start_time: Optional[datetime] = Field(default=None, alias="startTime")
    end_time: Optional[datetime] = Field(default=None, alias="endTime")

    @field_validator("title", mode="before")
    @classmethod
    def _clean_title(cls, value: Any) -> str:
        cleaned = sanitize_text(value, TITLE_MAX)
        if not cleaned:
            raise ValueError("title must not be empty")
        return cleaned

    @field_validator("description", mode="before")
    @classmethod
    def _clean_description(cls, value: Any) -> Optional[str]:
        return sanitize_text(value, DESCRIPTION_MAX) or None

    @field_validator("location", mode="before")
    @classmethod
    def _clean_location(cls, value: Any) -> Optional[str]:
        return sanitize_text(value, LOCATION_MAX) or None

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, value: Any) -> ItineraryCategory:
        return ItineraryCategory.coerce(value)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _blank_time_is_missing(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("start_time", "end_time")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    properties: Mapping[str, Any]
    required: Tuple[str, ...]
    model: Type[BaseModel]

    def as_openai_tool(self) -> Dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "properties": copy.deepcopy(dict(self.properties)),
                    "required": list(self.required),
                },
            },
        }


TOOL_REGISTRY: Mapping[str, ToolSpec] = MappingProxyType({
    CREATE_SERVICE_REQUEST: ToolSpec(
        name=CREATE_SERVICE_REQUEST,
        description=(
            "Create a service request for the guest. Only use a service name from the "
            "hotel's list of available services, copied exactly."
        ),
        properties=MappingProxyType({
            "requestType": {
                "type": "string",
                "description": "Exact name of the service as listed by the hotel (e.g. 'Extra Towels')",
            },
            "details": {
                "type": "string",
                "description": "Additional details about the request",
            },
        }),
        required=("requestType",),
        model=CreateServiceRequestArgs,
    ),
    ADD_TO_ITINERARY: ToolSpec(
        name=ADD_TO_ITINERARY,
        description="Add an activity to the guest's trip itinerary",
        properties=MappingProxyType({
            "title": {"type": "string", "description": "Name of the activity or place"},
            "description": {"type": "string", "description": "Brief description of the activity"},
            "location": {"type": "string", "description": "Location or address"},
            "category": {
                "type": "string",
                "enum": [category.value for category in ItineraryCategory],
                "description": "Category of the activity",
            },
            "startTime": {
                "type": "string",
                "description": "Start date and time in ISO 8601 format (e.g. 2025-03-14T19:30:00)",
            },
            "endTime": {
                "type": "string",
                "description": "End date and time in ISO 8601 format, optional",
            },
        }),
        required=("title",),
        model=AddToItineraryArgs,
    ),
})


def get_tool(name: str) -> Optional[ToolSpec]:
    return TOOL_REGISTRY.get(name)


def openai_tools() -> List[Dict[str, Any]]:
    """Tool declarations in the chat-completions ``tools`` format."""
    return [spec.as_openai_tool() for spec in TOOL_REGISTRY.values()]


def _describe_validation_error(spec: ToolSpec, error: ValidationError) -> str:
    for detail in error.errors():
        field = ".".join(str(part) for part in detail.get("loc", ()))
        if detail.get("type") == "missing":
            return f"Missing required field: {field}"
    first = error.errors()[0] if error.errors() else {}
    field = ".".join(str(part) for part in first.get("loc", ()))
    return f"Invalid value for {field}" if field else f"Invalid arguments for {spec.name}"


def parse_arguments(name: str, arguments: Any) -> BaseModel:
    """
    Build the typed argument model for tool ``name``.

    Raises ToolValidationError for an unknown tool, a non-object payload or
    arguments that do not satisfy the tool's contract.
    """
    spec = get_tool(name)
    if spec is None:
        raise ToolValidationError("Unknown tool")
    if not isinstance(arguments, dict):
        raise ToolValidationError("Invalid arguments")
    try:
        return spec.model.model_validate(arguments)
    except ValidationError as e:
        raise ToolValidationError(_describe_validation_error(spec, e)) from e
