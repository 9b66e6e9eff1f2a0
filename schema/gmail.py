"""Defines the structure of the Gmail relay setup requests and responses."""

from pydantic import BaseModel, ConfigDict, Field
from typing import Annotated, Optional


class SetupGmailRequest(BaseModel):
    """Describes the structure of the Gmail setup request."""

    model_config = ConfigDict(populate_by_name=True)

    email: Annotated[Optional[str], Field(default=None)]
    app_password: Annotated[Optional[str], Field(default=None, alias="appPassword", repr=False)]


class SetupGmailResponse(BaseModel):
    """Describes the structure of the Gmail setup response. The password is masked."""

    success: Annotated[bool, Field(default=True)]
    message: Annotated[str, Field(default="Gmail configured successfully")]
    email: Annotated[str, Field()]
    app_password: Annotated[str, Field(serialization_alias="appPassword")]


class GmailConfigResponse(BaseModel):
    """Describes whether relay credentials are currently held."""

    success: Annotated[bool, Field(default=True)]
    configured: Annotated[bool, Field()]
