from fastapi import Request

from genrelay.core.errors import Unauthorized
from genrelay.services.directory import ProviderDirectory
from genrelay.services.generation import GenerationService


def get_generation_service(request: Request) -> GenerationService:
    return request.app.state.generation_service


def get_directory(request: Request) -> ProviderDirectory:
    return request.app.state.directory


def get_caller(request: Request) -> str:
    # identity is verified upstream by the auth gateway; it is trusted as-is here
    caller = (request.headers.get(request.app.state.auth_header) or "").strip()
    if not caller:
        raise Unauthorized("unauthorized")
    return caller
