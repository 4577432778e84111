"""
Session configuration.
"""

from typing import Any, List, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

SessionCheck = Literal["user_agent", "ip_address", "expiration"]


class SessionConfig(BaseModel):
    """
    Settings of the session lifecycle.

    Attributes:
        name: Session name, also the cookie name. Empty means md5 of the server name.
        gc_probability: Numerator of the chance to run garbage collection on start
        gc_divisor: Denominator of the chance to run garbage collection on start
        gc_maxlifetime: Seconds of inactivity after which a session expires
        regenerate: Regenerate the session id every N hits; 0 disables it
        checks: Checks run against the request on every hit after the first
        cookie_*: Attributes of the session cookie
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str = ""
    gc_probability: int = Field(0, ge=0)
    gc_divisor: int = Field(100, gt=0)
    gc_maxlifetime: int = Field(86400, gt=0)
    regenerate: int = Field(0, ge=0)
    checks: List[SessionCheck] = Field(default_factory=lambda: ["user_agent"], alias="validate")

    cookie_path: str = "/"
    cookie_domain: Optional[str] = None
    cookie_secure: bool = False
    cookie_httponly: bool = True
    cookie_samesite: Optional[Literal["Strict", "Lax", "None"]] = "Lax"

    @field_validator("checks", mode="before")
    @classmethod
    def _split_checks(cls, value: Any) -> Any:
        # "user_agent, ip_address" is accepted as well as a list
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "SessionConfig":
        """
        Build a config from a flat params mapping.

        Keys may carry a ``session.`` prefix, so one application-wide config
        mapping can be passed as is:

            SessionConfig.from_params({"session.name": "app", "session.validate": ["ip_address"]})
        """
        values = {}
        for key, value in params.items():
            if key.lower().startswith("session."):
                key = key[len("session."):]
            values[key] = value
        return cls.model_validate(values)
