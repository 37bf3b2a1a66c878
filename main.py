import logging

import httpx
from fastapi import Depends, FastAPI, File, HTTPException, UploadFile
from fastapi.responses import PlainTextResponse, Response
from pydantic import BaseModel, HttpUrl
from starlette.middleware.cors import CORSMiddleware

from envoy_read.cli import setup_logging
from envoy_read.config import Settings
from envoy_read.engine import inspect_proxy, read_config
from envoy_read.errors import MalformedDocument, UnknownOutputMode
from envoy_read.fetch import admin_api_fetcher
from envoy_read.models import FilterParams
from envoy_read.render import OutputMode

settings = Settings()
setup_logging(settings.log_level)

app = FastAPI()

# Add CORS support for UI requests
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class EnvoyAddressInput(BaseModel):
    envoy_admin_api: HttpUrl  # Validates it's a proper URL


def filter_params(
    clusters: bool = False,
    endpoints: bool = False,
    listeners: bool = False,
    routes: bool = False,
    secrets: bool = False,
    fqdn: str = "",
    address: str = "",
    port: int = -1,
) -> FilterParams:
    return FilterParams(
        clusters=clusters,
        endpoints=endpoints,
        listeners=listeners,
        routes=routes,
        secrets=secrets,
        fqdn=fqdn,
        address=address,
        port=port,
    )


def respond(result, output):
    """
    Turns a ``ReadResult`` into an HTTP response.

    Sections that failed to extract turn the whole answer into a 422 listing
    them, rather than returning a view with kinds silently missing.
    """
    if result.errors:
        raise HTTPException(
            status_code=422,
            detail={kind.value: str(err) for kind, err in result.errors.items()},
        )
    if OutputMode.parse(output) == OutputMode.TABLE:
        return PlainTextResponse(result.output)
    return Response(content=result.output, media_type="application/json")


@app.post("/api/set_envoy_address")
async def set_envoy_address(input_data: EnvoyAddressInput):
    settings.admin_api = str(input_data.envoy_admin_api).rstrip("/")
    return {"message": "Envoy Admin API address updated", "new_address": settings.admin_api}


# API Endpoint: Fetch and render the live config dump
@app.get("/api/config_dump")
def get_envoy_config(output: str = "json", params: FilterParams = Depends(filter_params)):
    """
    Fetches the config dump from the configured Envoy admin API and renders it.

    - **output**: `table`, `json` (default) or `raw`.
    - **clusters/endpoints/listeners/routes/secrets**: narrow the output to these kinds.
    - **fqdn/address/port**: filter predicates.
    """
    try:
        result = inspect_proxy(admin_api_fetcher(settings), params, output)
    except UnknownOutputMode as e:
        raise HTTPException(status_code=400, detail=str(e))
    except MalformedDocument as e:
        raise HTTPException(status_code=422, detail=str(e))
    except httpx.HTTPError as e:
        logging.error(f"Fetching config dump from {settings.admin_api} failed: {e}")
        raise HTTPException(status_code=502, detail=f"Envoy admin API request failed: {e}")
    return respond(result, output)


# File Upload API
@app.post("/api/read")
async def read_uploaded_config(
    file: UploadFile = File(...),
    output: str = "json",
    params: FilterParams = Depends(filter_params),
):
    """Render an uploaded config dump."""
    contents = await file.read()
    try:
        result = read_config(contents, params, output)
    except UnknownOutputMode as e:
        raise HTTPException(status_code=400, detail=str(e))
    except MalformedDocument as e:
        raise HTTPException(status_code=422, detail=f"Invalid config dump in file {file.filename}: {e}")
    return respond(result, output)
