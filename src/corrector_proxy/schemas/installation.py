"""Installation registration schemas."""

from pydantic import BaseModel, Field, StrictStr, field_validator

from corrector_proxy.services.validation import is_valid_uuid


class RegisterRequest(BaseModel):
    """Schema for anonymous installation registration."""

    install_id: StrictStr = Field(..., description="Client-generated UUID for this installation")
    version: StrictStr | None = Field(None, description="Extension version string")

    @field_validator("install_id")
    @classmethod
    def _validate_install_id(cls, value: str) -> str:
        if not is_valid_uuid(value):
            raise ValueError("install_id must be a UUID")
        return value


class RegisterResponse(BaseModel):
    """Registration response carrying the plaintext token exactly once."""

    install_token: str = Field(..., description="Bearer token for /v1/transform (tok_...)")
