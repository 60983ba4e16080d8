from fastapi import APIRouter, Depends

from genrelay.api.deps import get_caller, get_directory
from genrelay.schemas.generate import Envelope
from genrelay.services.directory import ProviderDirectory, ProviderView

router = APIRouter(tags=["providers"])


@router.get("/providers")
async def list_providers(caller: str = Depends(get_caller), directory: ProviderDirectory = Depends(get_directory)):
    # the caller's own providers plus public ones, credentials masked
    profiles = await directory.available(caller)
    return Envelope(data=[ProviderView.of(p, caller) for p in profiles])
