"""
Gmail router for configuring the relay credentials held in memory.
"""

import logfire

from fastapi import APIRouter, status, Depends
from fastapi.responses import JSONResponse

from typing import Annotated

from schema.common import ErrorResponse
from schema.gmail import SetupGmailRequest, SetupGmailResponse, GmailConfigResponse

from services.credentials import CredentialStore, get_credential_store
from services.errors import DispatchError

router = APIRouter(
    prefix="/api",
    tags=["Gmail"],
)


@router.post(
    "/setup-gmail",
    response_model=SetupGmailResponse,
    responses={status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse}},
)
def setup_gmail(
    payload: SetupGmailRequest,
    credential_store: Annotated[CredentialStore, Depends(get_credential_store)],
):
    """Store the Gmail address and 16 character app password used to send email.

    Credentials live in process memory only and replace any previous set.
    The password is never echoed back in cleartext.

    ## Responses
    ### Missing field
    - status code: 400
    - body: ```{'error': 'Email and app password are required'}```

    ### Invalid email
    - status code: 400
    - body: ```{'error': 'Invalid email format'}```

    ### Wrong password length
    - status code: 400
    - body: ```{'error': 'App password should be 16 characters'}```
    """
    try:
        credentials = credential_store.configure(payload.email, payload.app_password)
    except DispatchError as e:
        logfire.warning(f"Gmail setup rejected: {e.error}")
        return JSONResponse(status_code=e.status_code, content=e.to_content())

    return SetupGmailResponse(email=credentials.address, app_password=credentials.masked_secret)


@router.get("/check-gmail-config", response_model=GmailConfigResponse)
def check_gmail_config(credential_store: Annotated[CredentialStore, Depends(get_credential_store)]):
    """Report whether relay credentials are configured, without revealing them."""
    return GmailConfigResponse(configured=credential_store.is_configured())
