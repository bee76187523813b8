"""
Outbound Treblle payload models.

Field names match the Treblle ingestion API. ``sdk``, ``version`` and
``software`` are fixed and cannot be set from input.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

SDK_NAME = "Azure"
SDK_VERSION = "0.6"
SERVER_SOFTWARE = "Azure"

ERROR_TYPE = "API Request failure"
ERROR_SOURCE = "onError"


class OperatingSystem(BaseModel):
    name: str = "Unknown"
    release: str = "Unknown"
    architecture: str = "Unknown"


class Server(BaseModel):
    timezone: str = "UTC"
    signature: str = ""
    protocol: str = "https"
    encoding: str = "UTF-8"
    os: OperatingSystem = Field(default_factory=OperatingSystem)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def software(self) -> str:
        return SERVER_SOFTWARE


class Request(BaseModel):
    timestamp: str = ""
    ip: str = ""
    url: str = ""
    user_agent: str = ""
    method: str = ""
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Any = Field(default_factory=dict, description="Decoded JSON body or its text")


class Response(BaseModel):
    code: int = 0
    size: int = Field(default=0, description="Byte length of the original body")
    headers: Dict[str, str] = Field(default_factory=dict)
    load_time: float = Field(default=0.0, ge=0, description="Microseconds between request and response")
    body: Any = Field(default_factory=dict)


class RuntimeErrorInfo(BaseModel):
    """Error record attached to failed (4xx/5xx) API calls."""

    type: str = ERROR_TYPE
    source: str = ERROR_SOURCE
    line: int = 0
    message: str = ""


class Data(BaseModel):
    request: Request = Field(default_factory=Request)
    response: Response = Field(default_factory=Response)
    server: Server = Field(default_factory=Server)
    errors: List[RuntimeErrorInfo] = Field(default_factory=list)


class TrebllePayload(BaseModel):
    """Canonical monitoring payload sent to Treblle."""

    model_config = ConfigDict(validate_assignment=True)

    api_key: Optional[str] = None
    project_id: Optional[str] = None
    internal_id: str = ""
    data: Data = Field(default_factory=Data)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def sdk(self) -> str:
        return SDK_NAME

    @computed_field  # type: ignore[prop-decorator]
    @property
    def version(self) -> str:
        return SDK_VERSION
