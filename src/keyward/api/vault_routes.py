# Vault API - JSON endpoints for the caller-facing vault operations
#
# Every endpoint returns the operation's {success, message, data?, kind?}
# envelope with HTTP 200; HTTP errors are reserved for a bad session token
# (401) and malformed request bodies (422).

from typing import Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..vault.service import VaultService
from .security import verify_session_token

router = APIRouter(prefix="/api/vault", tags=["vault"])


# ── Singleton ────────────────────────────────────────────────────────

_service: Optional[VaultService] = None


def get_vault_service() -> VaultService:
    """Get or create the VaultService used by the routes."""
    global _service
    if _service is None:
        _service = VaultService()
    return _service


def set_vault_service(service: Optional[VaultService]) -> None:
    """Replace the singleton (for testing)."""
    global _service
    _service = service


async def close_vault_service() -> None:
    """End the session and release the remote connection, if a service was created."""
    global _service
    if _service is not None:
        await _service.close()
        _service = None


# Request Models
class CredentialsRequest(BaseModel):
    username: str = ""
    master_key: str = ""


class CloudToggleRequest(BaseModel):
    identity_id: str
    enabled: bool


class CreateRecordRequest(BaseModel):
    service: str
    username: str
    secret: str


class RevealRecordRequest(BaseModel):
    grant: Optional[str] = None


class UpdateRecordRequest(BaseModel):
    fields: Dict[str, str]
    grant: Optional[str] = None


class BreachCheckRequest(BaseModel):
    account: str


# Endpoints

@router.post("/register")
async def register_account(request: CredentialsRequest, token: str = Depends(verify_session_token)):
    """Create a local account (alphanumeric username, master key of 8+ characters)."""
    result = await get_vault_service().register(request.username, request.master_key)
    return result.to_dict()


@router.post("/login")
async def login(request: CredentialsRequest, token: str = Depends(verify_session_token)):
    """Log in; data.route tells whether records are local-only or cloud-linked."""
    result = await get_vault_service().login(request.username, request.master_key)
    return result.to_dict()


@router.post("/logout")
async def logout(token: str = Depends(verify_session_token)):
    result = await get_vault_service().logout()
    return result.to_dict()


@router.post("/step-up")
async def step_up_verify(request: CredentialsRequest, token: str = Depends(verify_session_token)):
    """
    Re-verify the master key for one reveal or edit.

    data.grant is single-use and must be passed to the reveal/update call.
    """
    result = await get_vault_service().step_up_verify(request.username, request.master_key)
    return result.to_dict()


@router.post("/cloud")
async def set_cloud_enabled(request: CloudToggleRequest, token: str = Depends(verify_session_token)):
    result = await get_vault_service().set_cloud_enabled(request.identity_id, request.enabled)
    return result.to_dict()


@router.post("/records")
async def create_record(request: CreateRecordRequest, token: str = Depends(verify_session_token)):
    result = await get_vault_service().create_record(
        request.service, request.username, request.secret
    )
    return result.to_dict()


@router.get("/records")
async def list_records(owner_id: Optional[str] = None, token: str = Depends(verify_session_token)):
    """List the session's records. Secrets are never included."""
    result = await get_vault_service().list_records(owner_id)
    return result.to_dict()


@router.post("/records/{record_id}/reveal")
async def reveal_record(
    record_id: str,
    request: RevealRecordRequest,
    token: str = Depends(verify_session_token),
):
    result = await get_vault_service().reveal_record(record_id, request.grant)
    return result.to_dict()


@router.put("/records/{record_id}")
async def update_record(
    record_id: str,
    request: UpdateRecordRequest,
    token: str = Depends(verify_session_token),
):
    result = await get_vault_service().update_record(record_id, request.fields, request.grant)
    return result.to_dict()


@router.delete("/records/{record_id}")
async def delete_record(record_id: str, token: str = Depends(verify_session_token)):
    result = await get_vault_service().delete_record(record_id)
    return result.to_dict()


@router.delete("/accounts/{identity_id}")
async def delete_account(identity_id: str, token: str = Depends(verify_session_token)):
    result = await get_vault_service().delete_account(identity_id)
    return result.to_dict()


@router.get("/generate-password")
async def generate_password(length: int = 16, token: str = Depends(verify_session_token)):
    result = await get_vault_service().generate_password(length)
    return result.to_dict()


@router.post("/breaches")
async def check_breaches(request: BreachCheckRequest, token: str = Depends(verify_session_token)):
    result = await get_vault_service().check_breaches(request.account)
    return result.to_dict()
