"""Federated identity record produced from a Mail.ru profile."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from mailru_idp.federation.config import ProviderConfig

# Opaque JSON object returned by the user profile endpoint
RawProfile = Dict[str, Any]


class Identity(BaseModel):
    """
    Canonical identity handed to the broker.

    id and username are both the email address. context_data keeps the raw
    profile under the provider alias for attribute mappers.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: str = Field(..., description="Federated user id (the email address)")
    email: str = Field(..., min_length=1)
    username: str = Field(..., min_length=1)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    provider_config: ProviderConfig
    provider: Any = Field(default=None, exclude=True, repr=False)
    context_data: Dict[str, RawProfile] = Field(default_factory=dict)

    @property
    def raw_profile(self) -> Optional[RawProfile]:
        return self.context_data.get(self.provider_config.alias)

    @property
    def broker_user_id(self) -> str:
        return f"{self.provider_config.alias}.{self.id}"
