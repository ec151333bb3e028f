# main.py
import io
import logging
from typing import Optional
from urllib.parse import quote_plus, unquote_to_bytes

import requests
from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse, StreamingResponse
from fastapi.templating import Jinja2Templates

import engine
from config import TEMPLATES_DIR, Settings, load_settings
from engine import InvalidParameter, UpstreamError

APP_NAME = "Sourire Web"
APP_VERSION = "0.6.0"

NAME_NOT_FOUND = "Chemical name could not be converted to SMILES."

# ----- logging -----
logging.basicConfig(level=logging.INFO)
log = logging.getLogger("sourire_web")

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
router = APIRouter()


class NameUnresolved(LookupError):
    pass


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


# ---------- name → SMILES ----------
def resolve_name(settings: Settings, name: str) -> Optional[str]:
    """
    Ask the lookup service for the SMILES of a chemical name.
    Returns the response body on HTTP 200 (possibly empty) and None for any
    other status. Transport failures raise UpstreamError.
    """
    url = settings.chem_name_lookup_service.replace("$name", quote_plus(name, safe=""))
    try:
        r = requests.get(url, verify=settings.verify_ssl)
    except requests.RequestException as e:
        log.info("Lookup: request failed for %r: %s", name, e)
        raise UpstreamError("Chemical name lookup service is unavailable.") from e

    if r.status_code != 200:
        log.info("Lookup: no hit (%s) for %r", r.status_code, name)
        return None
    smiles = r.text.strip()
    log.info("Lookup: hit for %r -> %s", name, smiles)
    return smiles


def name_to_smiles(settings: Settings, name: str) -> str:
    smiles = resolve_name(settings, name)
    if not smiles:
        raise NameUnresolved(name)
    return smiles


# ---------- rendering ----------
def png_response(image) -> StreamingResponse:
    return StreamingResponse(io.BytesIO(engine.to_png(image)), media_type="image/png")


def parse_request(width: str, height: str, *colors: str) -> tuple:
    w = engine.parse_dimension(width, "width")
    h = engine.parse_dimension(height, "height")
    return (w, h, *(engine.parse_color(c) for c in colors))


def render_on_canvas(settings: Settings, w: int, h: int, bg, fg, smiles: str) -> StreamingResponse:
    molecule = engine.render_scaled_molecule(settings.molecule_render_service, w, h, fg, smiles)
    return png_response(engine.center_on_canvas(molecule, w, h, bg))


def render_plain(settings: Settings, w: int, h: int, fg, smiles: str) -> StreamingResponse:
    # no canvas: the molecule keeps the background it was rendered with
    return png_response(engine.render_scaled_molecule(settings.molecule_render_service, w, h, fg, smiles))


# ---------- routes ----------
@router.get("/", response_class=HTMLResponse)
def root(request: Request, settings: Settings = Depends(get_settings)):
    return templates.TemplateResponse(request, "index.html", dict(settings.context))


@router.get("/__status", response_class=PlainTextResponse)
def status():
    return f"{APP_NAME} {APP_VERSION}"


@router.get("/api/name/exists/{name:path}")
def name_exists(name: str, settings: Settings = Depends(get_settings)):
    return JSONResponse(resolve_name(settings, name) is not None)


def path_args(request: Request, prefix: str) -> list:
    """
    Segments of the request path after `prefix`, percent-decoded one at a
    time. Only a literal '/' separates arguments; a structure or name that
    contains a slash arrives with it encoded as %2F.
    """
    raw = request.scope.get("raw_path") or request.scope["path"].encode("utf-8")
    raw = raw.split(b"?", 1)[0]
    root = request.scope.get("root_path", "").encode("utf-8")
    if root and raw.startswith(root):
        raw = raw[len(root):]
    tail = raw[len(prefix):]
    try:
        return [unquote_to_bytes(seg).decode("utf-8") for seg in tail.split(b"/")]
    except UnicodeDecodeError as e:
        raise InvalidParameter("path is not valid UTF-8") from e


def require(value: str, label: str) -> str:
    if not value:
        raise InvalidParameter(f"{label} must not be empty")
    return value


def not_found() -> JSONResponse:
    return JSONResponse({"error": "Not Found"}, status_code=404)


@router.get("/api/smiles/{params:path}")
def smiles_image(request: Request, settings: Settings = Depends(get_settings)):
    args = path_args(request, "/api/smiles/")
    if len(args) == 5:
        w, h, bg, fg = parse_request(*args[:4])
        return render_on_canvas(settings, w, h, bg, fg, require(args[4], "structure"))
    if len(args) == 4:
        w, h, fg = parse_request(*args[:3])
        return render_plain(settings, w, h, fg, require(args[3], "structure"))
    return not_found()


@router.get("/api/name/{params:path}")
def name_image(request: Request, settings: Settings = Depends(get_settings)):
    args = path_args(request, "/api/name/")
    if len(args) == 5:
        w, h, bg, fg = parse_request(*args[:4])
        smiles = name_to_smiles(settings, require(args[4], "name"))
        return render_on_canvas(settings, w, h, bg, fg, smiles)
    if len(args) == 4:
        w, h, fg = parse_request(*args[:3])
        smiles = name_to_smiles(settings, require(args[3], "name"))
        return render_plain(settings, w, h, fg, smiles)
    return not_found()


# ---------- errors ----------
def invalid_parameter(request: Request, exc: InvalidParameter):
    return JSONResponse({"error": str(exc)}, status_code=400)


def name_unresolved(request: Request, exc: NameUnresolved):
    return JSONResponse({"error": NAME_NOT_FOUND}, status_code=404)


def upstream_failure(request: Request, exc: UpstreamError):
    log.info("Upstream failure on %s: %s", request.url.path, exc)
    return JSONResponse({"error": str(exc)}, status_code=502)


def unexpected_failure(request: Request, exc: Exception):
    log.exception("Unexpected failure on %s", request.url.path)
    return JSONResponse({"error": "Failed to render structure."}, status_code=500)


def create_app(settings: Settings) -> FastAPI:
    app = FastAPI(title=APP_NAME, version=APP_VERSION, debug=settings.debug)
    app.state.settings = settings
    if settings.debug:
        log.setLevel(logging.DEBUG)

    app.include_router(router)
    app.add_exception_handler(InvalidParameter, invalid_parameter)
    app.add_exception_handler(NameUnresolved, name_unresolved)
    app.add_exception_handler(UpstreamError, upstream_failure)
    app.add_exception_handler(Exception, unexpected_failure)
    return app


app = create_app(load_settings())
